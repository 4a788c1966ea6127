# views.py
"""Menu titles for events and notes. No AppKit here so it stays testable."""
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .models import CalendarEvent, Note

NO_EVENTS_TITLE = "No upcoming events"
NO_NOTES_TITLE = "No notes yet"


def friendly_snippet(text: str, length: int = 60) -> str:
    if not text:
        return ""
    s = text.replace("\n", " ")
    return s[:length] + ("..." if len(s) > length else "")


def day_heading(day: datetime, today: datetime) -> str:
    delta = (day.date() - today.date()).days
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Tomorrow"
    return day.strftime("%a %d %b")


def event_line(event: CalendarEvent) -> str:
    when = "All day" if event.all_day else event.start.strftime("%H:%M")
    line = f"{when}  {friendly_snippet(event.title or 'Untitled event')}"
    if event.location:
        line += f" @ {friendly_snippet(event.location, 30)}"
    return line


def event_sections(grouped: Dict[datetime, List[CalendarEvent]],
                   today: Optional[datetime] = None) -> List[Tuple[str, List[str]]]:
    """[(heading, [event line, ...]), ...] with days ascending."""
    today = today or datetime.now()
    return [
        (day_heading(day, today), [event_line(ev) for ev in grouped[day]])
        for day in sorted(grouped)
    ]


def calendar_rows(events: Dict[datetime, List[CalendarEvent]], is_authorized: bool,
                  error_message: Optional[str] = None, fetch_error: Optional[str] = None,
                  today: Optional[datetime] = None) -> List[Tuple[str, str, Optional[CalendarEvent]]]:
    """
    Rows of the events section as (title, kind, event), kind being "error",
    "empty", "header" or "event". Titles are already unique for rumps.
    """
    rows: List[Tuple[str, str, Optional[CalendarEvent]]] = []
    if not is_authorized:
        if error_message:
            rows.append((friendly_snippet(error_message, 70), "error", None))
    else:
        if fetch_error:
            rows.append((friendly_snippet(fetch_error, 70), "error", None))
        today = today or datetime.now()
        if not events:
            rows.append((NO_EVENTS_TITLE, "empty", None))
        for day in sorted(events):
            rows.append((day_heading(day, today), "header", None))
            rows.extend((event_line(ev), "event", ev) for ev in events[day])
    titles = unique_titles([title for title, _, _ in rows])
    return [(title, kind, ev) for title, (_, kind, ev) in zip(titles, rows)]


def event_detail(event: CalendarEvent) -> str:
    if event.all_day:
        when = event.start.strftime("%a %d %b %Y, all day")
    else:
        when = event.start.strftime("%a %d %b %Y %H:%M")
        if event.end is not None:
            when += event.end.strftime(" - %H:%M")
    lines = [event.title or "Untitled event", when]
    if event.location:
        lines.append(f"Location: {event.location}")
    if event.calendar is not None:
        lines.append(f"Calendar: {event.calendar.title}")
    return "\n".join(lines)


def note_title(note: Note) -> str:
    return f"{note.timestamp.strftime('%d %b %H:%M')}  {friendly_snippet(note.text, 50)}"


def unique_titles(titles: List[str]) -> List[str]:
    """rumps keys menu items by title, so repeated titles get a counter suffix."""
    seen: Dict[str, int] = {}
    out = []
    for t in titles:
        n = seen.get(t, 0) + 1
        seen[t] = n
        out.append(t if n == 1 else f"{t} ({n})")
    return out


def events_text(grouped: Dict[datetime, List[CalendarEvent]], today: Optional[datetime] = None) -> str:
    """Plain-text agenda for the scrollable window."""
    sections = event_sections(grouped, today)
    if not sections:
        return NO_EVENTS_TITLE
    parts = []
    for heading, lines in sections:
        parts.append(heading + "\n" + "\n".join(f"  {ln}" for ln in lines))
    return "\n\n".join(parts)