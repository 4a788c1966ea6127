# models.py
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class CalendarRef:
    identifier: str
    title: str


@dataclass(frozen=True)
class CalendarEvent:
    """Snapshot of one event, copied out of the event store at fetch time."""
    identifier: str
    title: str
    start: Optional[datetime]
    end: Optional[datetime]
    location: Optional[str] = None
    calendar: Optional[CalendarRef] = None
    all_day: bool = False


@dataclass(frozen=True)
class Note:
    text: str
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
