# notes.py
"""
Quick notes persisted in SQLite. Create and delete only; each call commits.
"""
import os
import sqlite3
import logging
import threading
from datetime import datetime
from typing import Iterable, List, Optional

from .models import Note


class NoteStore:
    def __init__(self, db_file: str):
        self.db_file = db_file
        self._lock = threading.Lock()
        self._conn = self._init_db()

    def _init_db(self) -> sqlite3.Connection:
        if self.db_file != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(self.db_file)), exist_ok=True)
        conn = sqlite3.connect(self.db_file, check_same_thread=False)
        conn.execute(
            """CREATE TABLE IF NOT EXISTS notes (
                id TEXT PRIMARY KEY,
                timestamp TEXT NOT NULL,
                text TEXT NOT NULL
            )"""
        )
        conn.commit()
        logging.info("Notes DB ready at %s", self.db_file)
        return conn

    def add(self, text: str) -> Optional[Note]:
        """Store ``text`` as a new note; blank input is ignored and returns None."""
        text = (text or "").strip()
        if not text:
            return None
        note = Note(text=text)
        with self._lock:
            self._conn.execute(
                "INSERT INTO notes (id, timestamp, text) VALUES (?,?,?)",
                (note.id, note.timestamp.isoformat(), note.text),
            )
            self._conn.commit()
        logging.info("Stored note %s", note.id)
        return note

    def list_notes(self) -> List[Note]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, timestamp, text FROM notes ORDER BY timestamp ASC, rowid ASC"
            ).fetchall()
        return [Note(id=nid, timestamp=datetime.fromisoformat(ts), text=text) for nid, ts, text in rows]

    def delete(self, note_id: str) -> bool:
        with self._lock:
            cur = self._conn.execute("DELETE FROM notes WHERE id=?", (note_id,))
            self._conn.commit()
        removed = cur.rowcount > 0
        logging.info("Deleted note %s (found=%s)", note_id, removed)
        return removed

    def delete_at(self, offsets: Iterable[int]) -> int:
        """Delete by position in ``list_notes()`` order; out-of-range offsets are ignored."""
        notes = self.list_notes()
        ids = [notes[i].id for i in sorted(set(offsets)) if 0 <= i < len(notes)]
        return sum(1 for nid in ids if self.delete(nid))

    def close(self) -> None:
        with self._lock:
            self._conn.close()
