# state.py
"""
Observable application state shared by the managers and the menu bar UI.

Managers write through ``AppState.update``; the UI subscribes and re-renders.
The dispatcher decides on which thread observers run: the app installs
``AppHelper.callAfter`` so every notification lands on the Cocoa main thread.
"""
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .models import CalendarEvent

Observer = Callable[["AppState", Dict[str, Any]], None]


def _call_now(fn, *args):
    fn(*args)


class AppState:
    FIELDS = (
        "events",
        "is_authorized",
        "error_message",
        "fetch_error",
        "api_key_set",
        "api_error",
        "is_loading",
        "last_response",
    )

    def __init__(self, dispatch: Optional[Callable[..., None]] = None):
        self.events: Dict[datetime, List[CalendarEvent]] = {}
        self.is_authorized = False
        self.error_message: Optional[str] = None
        self.fetch_error: Optional[str] = None
        self.api_key_set = False
        self.api_error: Optional[str] = None
        self.is_loading = False
        self.last_response: Optional[str] = None
        self._dispatch = dispatch or _call_now
        self._observers: List[Observer] = []
        self._lock = threading.Lock()

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register an observer; returns a function that removes it again."""
        with self._lock:
            self._observers.append(observer)

        def _unsubscribe():
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return _unsubscribe

    def update(self, **changes: Any) -> None:
        """Apply ``changes`` as one write on the dispatcher's thread, then notify."""
        unknown = set(changes) - set(self.FIELDS)
        if unknown:
            raise AttributeError(f"unknown state fields: {', '.join(sorted(unknown))}")
        self._dispatch(self._apply, dict(changes))

    def _apply(self, changes: Dict[str, Any]) -> None:
        with self._lock:
            for name, value in changes.items():
                setattr(self, name, value)
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(self, changes)
            except Exception:
                logging.exception("State observer failed for %s", sorted(changes))
