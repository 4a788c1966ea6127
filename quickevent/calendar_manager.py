# calendar_manager.py
"""
Calendar authorization and fetch flow.

``check_authorization`` evaluates the current permission tier once (prompting
when undecided) and fetches on success. ``fetch_next_events`` replaces the
grouped events on the app state with everything starting in the next month.
Neither raises: permission failures end up in ``state.error_message``, query
failures in ``state.fetch_error`` so the authorized flag and the permission
error never disagree.
"""
import calendar
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from .eventkit_access import AccessOutcome, AuthorizationStatus, CalendarAccess
from .models import CalendarEvent
from .state import AppState

DENIED_MESSAGE = "Calendar access is denied. Please enable it in System Settings."
NOT_GRANTED_MESSAGE = "Calendar access was not granted."
UNKNOWN_STATUS_MESSAGE = "Unknown calendar authorization status"


def add_months(dt: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day (Jan 31 + 1 -> Feb 28/29)."""
    index = dt.month - 1 + months
    year = dt.year + index // 12
    month = index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def day_start(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def group_by_day(events: Iterable[CalendarEvent]) -> Dict[datetime, List[CalendarEvent]]:
    """Group by local calendar day; days ascending, events by start within a day."""
    ordered = sorted((e for e in events if e.start is not None), key=lambda e: e.start)
    grouped: Dict[datetime, List[CalendarEvent]] = OrderedDict()
    for ev in ordered:
        grouped.setdefault(day_start(ev.start), []).append(ev)
    return grouped


class CalendarManager:
    def __init__(self, access: CalendarAccess, state: AppState,
                 clock: Optional[Callable[[], datetime]] = None):
        self.access = access
        self.state = state
        self.clock = clock or datetime.now

    def check_authorization(self) -> None:
        try:
            status = self.access.authorization_status()
        except Exception as e:
            logging.exception("Reading calendar authorization status failed")
            self._deny(f"Failed to read calendar authorization status: {e}")
            return
        logging.info("Calendar authorization status: %s", status.name)

        if status is AuthorizationStatus.AUTHORIZED:
            self._grant()
        elif status is AuthorizationStatus.NOT_DETERMINED:
            self._prompt()
        elif status in (AuthorizationStatus.DENIED, AuthorizationStatus.RESTRICTED):
            self._deny(DENIED_MESSAGE)
        else:
            self._deny(UNKNOWN_STATUS_MESSAGE)

    def _prompt(self) -> None:
        try:
            result = self.access.request_access()
        except Exception as e:
            logging.exception("Calendar access request failed")
            self._deny(f"Failed to request calendar access: {e}")
            return
        logging.info("Calendar access prompt result: %s", result.outcome.value)
        if result.granted:
            self._grant()
        elif result.outcome is AccessOutcome.ERROR:
            self._deny(f"Failed to request calendar access: {result.error}")
        else:
            self._deny(NOT_GRANTED_MESSAGE)

    def _grant(self) -> None:
        self.state.update(is_authorized=True, error_message=None)
        self.fetch_next_events()

    def _deny(self, message: str) -> None:
        logging.warning("Calendar unavailable: %s", message)
        self.state.update(is_authorized=False, error_message=message)

    def fetch_next_events(self) -> None:
        now = self.clock()
        end = add_months(now, 1)
        try:
            found = self.access.events_between(now, end)
        except Exception as e:
            logging.exception("Calendar query failed")
            self.state.update(fetch_error=f"Failed to fetch calendar events: {e}")
            return
        # the store matches on overlap; keep only events that start inside the window
        in_window = [ev for ev in found if ev.start is not None and now <= ev.start < end]
        skipped = sum(1 for ev in found if ev.start is None)
        if skipped:
            logging.debug("Skipped %d events without a start date", skipped)
        grouped = group_by_day(in_window)
        logging.info("Fetched %d events over %d days", len(in_window), len(grouped))
        self.state.update(events=grouped, fetch_error=None)
