# app.py
"""
QuickEvent — rumps menubar for upcoming calendar events, quick notes and an
"Ask OpenAI" prompt.

Requirements:
- python -m pip install -e .   (rumps, pyobjc EventKit/Security, requests, python-dotenv)

Behavior:
- Menu is rebuilt from AppState whenever it changes; state notifications are
  delivered on the Cocoa main thread via AppHelper.callAfter.
- Calendar permission, event queries and HTTP calls run in daemon threads.
- Long text (OpenAI replies, agenda) opens in a scrollable AppKit window;
  falls back to rumps.alert (truncated) if AppKit isn't importable.
"""
import os
import sys
import logging
import threading
from datetime import datetime

import rumps

PYOBJC_AVAILABLE = False
try:
    from AppKit import (
        NSApplication, NSWindow, NSScrollView, NSTextView, NSMakeRect,
        NSRunningApplication, NSApplicationActivateIgnoringOtherApps, NSBackingStoreBuffered,
        NSApplicationActivationPolicyAccessory,
    )
    from Foundation import NSString
    from PyObjCTools import AppHelper
    PYOBJC_AVAILABLE = True
except Exception:
    PYOBJC_AVAILABLE = False

from . import config
from . import views
from .calendar_manager import CalendarManager
from .eventkit_access import EventKitAccess
from .keychain import KeychainStore
from .notes import NoteStore
from .openai_client import OpenAIClient, validate_api_key
from .settings_link import open_calendar_privacy_settings
from .state import AppState

APP_NAME = config.APP_NAME
ICON_IDLE = "📅"
ICON_BUSY = "📅…"

# keep windows referenced so they do not get GC'd
GLOBAL_WINDOWS = []


def show_text_window(title: str, text: str, width: int = 640, height: int = 420):
    """
    Non-blocking, scrollable, resizable text window via AppKit (PyObjC).
    Falls back to rumps.alert if PyObjC isn't available.
    """
    if not PYOBJC_AVAILABLE:
        rumps.alert(title, text[:4000])
        return

    def _create():
        rect = NSMakeRect(200.0, 200.0, float(width), float(height))
        style_mask = 15  # titled, closable, resizable, miniaturizable
        window = NSWindow.alloc().initWithContentRect_styleMask_backing_defer_(
            rect, style_mask, NSBackingStoreBuffered, False
        )
        window.setTitle_(title)
        window.setReleasedWhenClosed_(False)

        scroll = NSScrollView.alloc().initWithFrame_(rect)
        scroll.setHasVerticalScroller_(True)
        scroll.setHasHorizontalScroller_(False)
        scroll.setAutoresizingMask_(18)  # width + height sizable

        text_view = NSTextView.alloc().initWithFrame_(rect)
        text_view.setEditable_(False)
        text_view.setSelectable_(True)
        text_view.setVerticallyResizable_(True)
        text_view.setHorizontallyResizable_(False)
        text_view.setAutoresizingMask_(18)
        text_view.textContainer().setWidthTracksTextView_(True)
        text_view.setString_(NSString.stringWithString_(text))

        scroll.setDocumentView_(text_view)
        window.setContentView_(scroll)
        window.center()
        window.makeKeyAndOrderFront_(None)
        NSRunningApplication.currentApplication().activateWithOptions_(NSApplicationActivateIgnoringOtherApps)
        GLOBAL_WINDOWS.append(window)

    AppHelper.callAfter(_create)


def run_in_background(target, *args):
    threading.Thread(target=target, args=args, daemon=True).start()


class QuickEventApp(rumps.App):
    def __init__(self, state: AppState, notes: NoteStore,
                 calendar: CalendarManager, assistant: OpenAIClient):
        super().__init__(APP_NAME, title=ICON_IDLE, quit_button=None)
        self.state = state
        self.notes = notes
        self.calendar = calendar
        self.assistant = assistant
        self.state.subscribe(self._on_state_change)
        self.rebuild_menu()

    # ---- state -> menu ----
    def _on_state_change(self, state: AppState, changes: dict):
        if "is_loading" in changes:
            self.title = ICON_BUSY if state.is_loading else ICON_IDLE
        if "api_error" in changes and state.api_error:
            rumps.notification(APP_NAME, "OpenAI API key", state.api_error)
        if set(changes) - {"is_loading", "last_response"}:
            self.rebuild_menu()

    def rebuild_menu(self):
        items = [rumps.MenuItem("Upcoming Events")]
        items.extend(self._event_items())
        if not self.state.is_authorized:
            items.append(rumps.MenuItem("Allow Calendar Access", callback=self.allow_calendar_access))
            items.append(rumps.MenuItem("Open Privacy Settings…", callback=self.open_privacy_settings))
        items.append(rumps.MenuItem("Refresh Events", callback=self.refresh_events))
        items.append(rumps.MenuItem("Show Agenda…", callback=self.show_agenda))
        items.append(None)
        items.append(rumps.MenuItem("Add Note…", callback=self.add_note))
        items.append(self._notes_menu())
        items.append(None)
        items.append(rumps.MenuItem("Ask OpenAI…", callback=self.ask_openai))
        items.append(self._api_key_menu())
        items.append(None)
        items.append(rumps.MenuItem("View Log", callback=self.view_log))
        items.append(rumps.MenuItem("Quit", callback=self.quit_app))
        self.menu.clear()
        self.menu.update(items)

    def _event_items(self):
        # items without a callback render disabled: day headers, errors, placeholder
        rows = views.calendar_rows(self.state.events, self.state.is_authorized,
                                   self.state.error_message, self.state.fetch_error)
        out = []
        for title, kind, event in rows:
            if kind == "event":
                out.append(rumps.MenuItem(
                    title, callback=lambda _, ev=event: show_text_window("Event", views.event_detail(ev))
                ))
            else:
                out.append(rumps.MenuItem(title))
        return out

    def _notes_menu(self):
        parent = rumps.MenuItem("Notes")
        try:
            notes = self.notes.list_notes()
        except Exception:
            logging.exception("Listing notes failed")
            notes = []
        if not notes:
            parent.add(rumps.MenuItem(views.NO_NOTES_TITLE))
            return parent
        titles = views.unique_titles([views.note_title(n) for n in notes])
        for note, title in zip(notes, titles):
            item = rumps.MenuItem(title)
            item.add(rumps.MenuItem("Show", callback=lambda _, n=note: show_text_window("Note", n.text)))
            item.add(rumps.MenuItem("Delete", callback=lambda _, nid=note.id: self.delete_note(nid)))
            parent.add(item)
        return parent

    def _api_key_menu(self):
        label = "OpenAI API Key ✓" if self.state.api_key_set else "OpenAI API Key"
        parent = rumps.MenuItem(label)
        parent.add(rumps.MenuItem("Set API Key…", callback=self.set_api_key))
        parent.add(rumps.MenuItem("Clear API Key", callback=self.clear_api_key))
        parent.add(rumps.MenuItem("Test API Connection", callback=self.test_api))
        return parent

    # ---- calendar ----
    def allow_calendar_access(self, _):
        run_in_background(self.calendar.check_authorization)

    def refresh_events(self, _):
        if self.state.is_authorized:
            run_in_background(self.calendar.fetch_next_events)
        else:
            run_in_background(self.calendar.check_authorization)

    def open_privacy_settings(self, _):
        if not open_calendar_privacy_settings():
            rumps.notification(APP_NAME, "Calendar access",
                               "Open System Settings > Privacy & Security > Calendars.")

    def show_agenda(self, _):
        show_text_window("Upcoming Events", views.events_text(self.state.events))

    # ---- notes ----
    def add_note(self, _):
        win = rumps.Window(title="Quick Note", message="Add new note…", default_text="",
                           ok="Save", cancel="Cancel", dimensions=(320, 60))
        resp = win.run()
        if not resp.clicked:
            return
        try:
            note = self.notes.add(resp.text)
        except Exception:
            logging.exception("Saving note failed")
            rumps.notification(APP_NAME, "Note not saved", "Could not write to the notes database.")
            return
        if note is None:
            return
        self.rebuild_menu()

    def delete_note(self, note_id: str):
        try:
            self.notes.delete(note_id)
        except Exception:
            logging.exception("Deleting note %s failed", note_id)
            rumps.notification(APP_NAME, "Note not deleted", "Could not write to the notes database.")
            return
        self.rebuild_menu()

    # ---- OpenAI ----
    def ask_openai(self, _):
        win = rumps.Window(title="Ask OpenAI", message="Message:", default_text="",
                           ok="Send", cancel="Cancel", dimensions=(420, 120))
        resp = win.run()
        text = (resp.text or "").strip()
        if not resp.clicked or not text:
            return

        def job():
            reply = self.assistant.send_message(text)
            show_text_window("OpenAI", reply)

        run_in_background(job)

    def set_api_key(self, _):
        win = rumps.Window(title="OpenAI API Key", message="Paste your OpenAI API key:",
                           default_text="", ok="Save", cancel="Cancel", secure=True)
        resp = win.run()
        key = (resp.text or "").strip()
        if not resp.clicked or not key:
            return
        if not validate_api_key(key):
            rumps.alert("OpenAI API Key", "That doesn't look like an OpenAI key (sk-…). Saving anyway.")
        if self.assistant.save_api_key(key):
            rumps.notification(APP_NAME, "OpenAI API key", "Saved to Keychain.")

    def clear_api_key(self, _):
        if self.assistant.clear_api_key():
            rumps.notification(APP_NAME, "OpenAI API key", "Removed from Keychain.")

    def test_api(self, _):
        def job():
            reply = self.assistant.test_api()
            rumps.notification(APP_NAME, "Test API Connection", views.friendly_snippet(reply, 200))

        run_in_background(job)

    # ---- misc ----
    def view_log(self, _):
        if os.path.exists(config.LOG_FILE):
            os.system(f'open "{os.path.abspath(config.LOG_FILE)}"')
        else:
            rumps.notification(APP_NAME, "View Log", "No log file yet.")

    def quit_app(self, _):
        try:
            self.notes.close()
        except Exception:
            logging.exception("Closing notes DB failed")
        rumps.quit_application()


def main():
    config.setup_logging()
    logging.info("QuickEvent startup. DB: %s Log: %s", config.DB_FILE, config.LOG_FILE)

    try:
        notes = NoteStore(config.DB_FILE)
    except Exception:
        logging.exception("Could not open notes database %s", config.DB_FILE)
        sys.exit(1)

    state = AppState(dispatch=AppHelper.callAfter if PYOBJC_AVAILABLE else None)
    calendar = CalendarManager(EventKitAccess(), state)
    assistant = OpenAIClient(KeychainStore(config.KEYCHAIN_SERVICE), state)

    if PYOBJC_AVAILABLE:
        # menubar only, no Dock icon
        NSApplication.sharedApplication().setActivationPolicy_(NSApplicationActivationPolicyAccessory)

    app = QuickEventApp(state, notes, calendar, assistant)
    assistant.load_api_key()
    run_in_background(calendar.check_authorization)
    logging.info("Started at %s", datetime.now().isoformat(timespec="seconds"))
    app.run()


if __name__ == "__main__":
    main()
