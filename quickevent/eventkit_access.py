# eventkit_access.py
"""
Calendar capability interface and its EventKit (PyObjC) implementation.

EventKit has two permission APIs: macOS 14 added
``requestFullAccessToEventsWithCompletion:`` and deprecated
``requestAccessToEntityType:completion:``. Both are folded into a single
blocking ``request_access`` that returns an ``AccessResult``, so callers never
see the split.

Blocking calls here must run off the Cocoa main thread.
"""
import enum
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .models import CalendarEvent, CalendarRef

PYOBJC_AVAILABLE = False
try:
    from EventKit import EKEventStore, EKEntityTypeEvent
    from Foundation import NSDate
    PYOBJC_AVAILABLE = True
except Exception:
    PYOBJC_AVAILABLE = False


class AuthorizationStatus(enum.Enum):
    NOT_DETERMINED = 0
    RESTRICTED = 1
    DENIED = 2
    AUTHORIZED = 3  # EKAuthorizationStatusFullAccess shares this value
    WRITE_ONLY = 4
    UNKNOWN = -1

    @classmethod
    def from_raw(cls, raw) -> "AuthorizationStatus":
        try:
            return cls(int(raw))
        except (TypeError, ValueError):
            return cls.UNKNOWN


class AccessOutcome(enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"
    ERROR = "error"


@dataclass(frozen=True)
class AccessResult:
    outcome: AccessOutcome
    error: Optional[str] = None

    @property
    def granted(self) -> bool:
        return self.outcome is AccessOutcome.GRANTED


class CalendarAccess:
    """What the authorization/fetch flow needs from a calendar backend."""

    def authorization_status(self) -> AuthorizationStatus:
        raise NotImplementedError

    def request_access(self) -> AccessResult:
        raise NotImplementedError

    def events_between(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        """Events overlapping [start, end); start may be None for malformed entries."""
        raise NotImplementedError


def _to_nsdate(dt: datetime):
    return NSDate.dateWithTimeIntervalSince1970_(dt.timestamp())


def _from_nsdate(value) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(float(value.timeIntervalSince1970()))


def _str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None


class EventKitAccess(CalendarAccess):
    def __init__(self):
        if not PYOBJC_AVAILABLE:
            raise RuntimeError("EventKit is unavailable: pip install pyobjc-framework-EventKit")
        self._store = EKEventStore.alloc().init()

    def authorization_status(self) -> AuthorizationStatus:
        raw = EKEventStore.authorizationStatusForEntityType_(EKEntityTypeEvent)
        status = AuthorizationStatus.from_raw(raw)
        logging.debug("EventKit authorization status raw=%s -> %s", raw, status.name)
        return status

    def request_access(self) -> AccessResult:
        done = threading.Event()
        box = {}

        def _completion(granted, error):
            box["granted"] = bool(granted)
            box["error"] = error
            done.set()

        if self._store.respondsToSelector_("requestFullAccessToEventsWithCompletion:"):
            self._store.requestFullAccessToEventsWithCompletion_(_completion)
        else:
            self._store.requestAccessToEntityType_completion_(EKEntityTypeEvent, _completion)
        done.wait()

        if box.get("granted"):
            # the old store instance does not see events granted after its creation
            self._store = EKEventStore.alloc().init()
            return AccessResult(AccessOutcome.GRANTED)
        error = box.get("error")
        if error is not None:
            return AccessResult(AccessOutcome.ERROR, str(error.localizedDescription()))
        return AccessResult(AccessOutcome.DENIED)

    def events_between(self, start: datetime, end: datetime) -> List[CalendarEvent]:
        predicate = self._store.predicateForEventsWithStartDate_endDate_calendars_(
            _to_nsdate(start), _to_nsdate(end), None
        )
        out = []
        for ek in self._store.eventsMatchingPredicate_(predicate) or []:
            begin = _from_nsdate(ek.startDate())
            cal = ek.calendar()
            out.append(CalendarEvent(
                identifier=_str_or_none(ek.eventIdentifier()) or "",
                title=_str_or_none(ek.title()) or "",
                start=begin,
                end=_from_nsdate(ek.endDate()),
                location=_str_or_none(ek.location()) or None,
                calendar=CalendarRef(str(cal.calendarIdentifier()), str(cal.title())) if cal is not None else None,
                all_day=bool(ek.isAllDay()),
            ))
        return out
