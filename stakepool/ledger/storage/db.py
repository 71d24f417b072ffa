# MIT License
# Copyright (c) 2025 Hashborn

import sqlite3
import threading
from typing import Optional, Dict, List, Tuple


class StorageDB:
    def __init__(self, db_path: str):
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.cursor = self.conn.cursor()
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        with self._lock:
            # State table: Key-Value store for pool state
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            ''')
            # Calls table: committed calls in execution order
            self.cursor.execute('''
                CREATE TABLE IF NOT EXISTS calls (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    call_id TEXT UNIQUE,
                    height INTEGER,
                    sender TEXT,
                    data TEXT
                )
            ''')
            self.conn.commit()

    # --- State Methods ---
    def get_state(self, key: str) -> Optional[str]:
        with self._lock:
            self.cursor.execute('SELECT value FROM state WHERE key = ?', (key,))
            row = self.cursor.fetchone()
            return row[0] if row else None

    def set_state(self, key: str, value: str):
        with self._lock:
            self.cursor.execute('INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)', (key, value))
            self.conn.commit()

    def write_batch(self, upserts: Dict[str, str], deletes: List[str] = None,
                    call: Optional[Tuple[str, int, str, str]] = None, replace: bool = False):
        """
        Applies a set of state changes in a single sqlite transaction.

        `call` is an optional (call_id, height, sender, data) row for the call
        log. The state changes and the log row commit or roll back together.
        With `replace`, every existing state key is dropped first.
        """
        with self._lock:
            try:
                if replace:
                    self.cursor.execute('DELETE FROM state')
                for key in deletes or []:
                    self.cursor.execute('DELETE FROM state WHERE key = ?', (key,))
                self.cursor.executemany(
                    'INSERT OR REPLACE INTO state (key, value) VALUES (?, ?)',
                    list(upserts.items())
                )
                if call is not None:
                    self.cursor.execute(
                        'INSERT INTO calls (call_id, height, sender, data) VALUES (?, ?, ?, ?)',
                        call
                    )
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise

    def get_state_by_prefix(self, prefix: str) -> Dict[str, str]:
        with self._lock:
            self.cursor.execute('SELECT key, value FROM state WHERE key LIKE ?', (f"{prefix}%",))
            return {row[0]: row[1] for row in self.cursor.fetchall()}

    # --- Call log ---
    def get_calls(self, from_seq: int = 0) -> List[Tuple[int, str, int, str, str]]:
        """Returns (seq, call_id, height, sender, data) rows in execution order."""
        with self._lock:
            self.cursor.execute(
                'SELECT seq, call_id, height, sender, data FROM calls WHERE seq > ? ORDER BY seq',
                (from_seq,)
            )
            return self.cursor.fetchall()

    def close(self):
        with self._lock:
            self.conn.close()
