"""Persistent store for scan results, exclusion rules and the date range."""

import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .config import DATABASE_FILE
from .exclusion import extract_address, is_excluded, normalize_rule, normalize_rules
from .models import Application, format_instant, parse_instant

DateValue = Union[str, datetime, None]


class ApplicationStore:
    """Merges streamed scan results into a deduplicated, exclusion-aware collection."""

    def __init__(
        self, conn: Optional[sqlite3.Connection] = None, database_file: str = DATABASE_FILE
    ):
        """Initialize database connection and create tables if needed.

        Args:
            conn: Optional SQLite connection object. If not provided, creates a new connection.
            database_file: Path to database file (used only if conn is not provided).
        """
        self.database_file = database_file
        if conn is not None:
            self.conn = conn
            self.owns_connection = False
        else:
            self.conn = sqlite3.connect(database_file)
            self.owns_connection = True
        self.cursor = self.conn.cursor()
        self.initialize_db()

    def initialize_db(self):
        """Initialize the SQLite database and create the necessary tables."""
        self.cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS applications (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT UNIQUE NOT NULL,
                company TEXT,
                role TEXT,
                status TEXT,
                email TEXT,
                date TEXT,
                subject TEXT,
                body_preview TEXT,
                label TEXT,
                confidence REAL
            )
        """
        )
        self.cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS excluded_emails (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                rule TEXT UNIQUE NOT NULL
            )
        """
        )
        self.cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """
        )
        self.conn.commit()
        logging.info("Database initialized successfully")

    # Applications

    def get_applications(self) -> List[Application]:
        """Return stored applications in insertion order."""
        self.cursor.execute(
            """
            SELECT id, company, role, status, email, date, subject, body_preview, label, confidence
            FROM applications
            ORDER BY seq ASC
        """
        )
        return [self._row_to_application(row) for row in self.cursor.fetchall()]

    def _row_to_application(self, row: Tuple) -> Application:
        app_id, company, role, status, email, date, subject, preview, label, confidence = row
        return Application(
            id=app_id,
            company=company,
            role=role,
            status=status,
            email=email,
            date=date,
            subject=subject,
            body_preview=preview,
            label=label,
            confidence=confidence,
        )

    def _insert_applications(self, applications: Iterable[Application]):
        self.cursor.executemany(
            """
            INSERT INTO applications
                (id, company, role, status, email, date, subject, body_preview, label, confidence)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
            [
                (
                    app.id,
                    app.company,
                    app.role,
                    app.status,
                    app.email,
                    app.date,
                    app.subject,
                    app.body_preview,
                    app.label,
                    app.confidence,
                )
                for app in applications
            ],
        )

    def set_applications(self, applications: List[Application]):
        """Replace all stored applications."""
        unique = list({app.id: app for app in applications}.values())
        self.cursor.execute("DELETE FROM applications")
        self._insert_applications(unique)
        self.conn.commit()
        logging.info(f"Stored {len(unique)} applications")

    def add_applications(self, applications: List[Application]) -> List[Application]:
        """Merge new applications, skipping known ids and excluded senders.

        Returns:
            The applications that were actually added, in input order.
        """
        existing_ids = {app.id for app in self.get_applications()}
        excluded = self.get_excluded_emails()

        added = []
        for app in applications:
            if app.id in existing_ids or is_excluded(app.email, excluded):
                continue
            existing_ids.add(app.id)
            added.append(app)

        self._insert_applications(added)
        self.conn.commit()
        logging.info(f"Added {len(added)} of {len(applications)} applications")
        return added

    def remove_applications(self, ids: List[str]):
        """Remove applications by id."""
        self.cursor.executemany("DELETE FROM applications WHERE id = ?", [(i,) for i in ids])
        self.conn.commit()

    def _drop_excluded_applications(self, rules: List[str]) -> int:
        doomed = [app.id for app in self.get_applications() if is_excluded(app.email, rules)]
        if doomed:
            self.cursor.executemany(
                "DELETE FROM applications WHERE id = ?", [(i,) for i in doomed]
            )
        return len(doomed)

    def apply_event(self, payload: Dict[str, Any]) -> List[Application]:
        """Merge the applications of a terminal ``complete`` payload.

        Other payloads are ignored.
        """
        if payload.get("type") != "complete":
            return []
        applications = [Application.from_dict(a) for a in payload.get("applications", [])]
        return self.add_applications(applications)

    # Exclusion rules

    def get_excluded_emails(self) -> List[str]:
        self.cursor.execute("SELECT rule FROM excluded_emails ORDER BY seq ASC")
        return [row[0] for row in self.cursor.fetchall()]

    def add_excluded_email(self, rule: str) -> bool:
        """Add an exclusion rule and drop applications it now excludes.

        Returns:
            False if the rule was blank or already present.
        """
        normalized = normalize_rule(rule)
        if not normalized or normalized in self.get_excluded_emails():
            return False

        self.cursor.execute("INSERT INTO excluded_emails (rule) VALUES (?)", (normalized,))
        removed = self._drop_excluded_applications([normalized])
        self.conn.commit()
        logging.info(f"Excluded '{normalized}', removed {removed} applications")
        return True

    def remove_excluded_email(self, rule: str):
        self.cursor.execute("DELETE FROM excluded_emails WHERE rule = ?", (normalize_rule(rule),))
        self.conn.commit()

    def set_excluded_emails(self, rules: List[str]):
        """Replace all exclusion rules and re-filter stored applications."""
        normalized = normalize_rules(rules)
        self.cursor.execute("DELETE FROM excluded_emails")
        self.cursor.executemany(
            "INSERT INTO excluded_emails (rule) VALUES (?)", [(r,) for r in normalized]
        )
        removed = self._drop_excluded_applications(normalized)
        self.conn.commit()
        logging.info(f"Set {len(normalized)} exclusion rules, removed {removed} applications")

    def clear_excluded_emails(self):
        self.cursor.execute("DELETE FROM excluded_emails")
        self.conn.commit()

    def unique_emails(self) -> List[str]:
        """Distinct sender addresses of stored applications that are not excluded verbatim."""
        excluded = set(self.get_excluded_emails())
        addresses: List[str] = []
        for app in self.get_applications():
            address = extract_address(app.email)
            if address not in addresses and address not in excluded:
                addresses.append(address)
        return addresses

    # Date range

    def _set_setting(self, key: str, value: Optional[str]):
        self.cursor.execute(
            "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, value)
        )

    def _get_setting(self, key: str) -> Optional[str]:
        self.cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
        result = self.cursor.fetchone()
        return result[0] if result else None

    @staticmethod
    def _date_to_text(value: DateValue) -> Optional[str]:
        if value is None:
            return None
        parsed = parse_instant(value)
        if parsed is None:
            raise ValueError(f"Invalid date: {value!r}")
        return format_instant(parsed)

    def set_start_date(self, value: DateValue):
        self._set_setting("start_date", self._date_to_text(value))
        self.conn.commit()

    def set_end_date(self, value: DateValue):
        self._set_setting("end_date", self._date_to_text(value))
        self.conn.commit()

    def set_date_range(self, start: DateValue, end: DateValue):
        self._set_setting("start_date", self._date_to_text(start))
        self._set_setting("end_date", self._date_to_text(end))
        self.conn.commit()

    def get_date_range(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        return (
            parse_instant(self._get_setting("start_date")),
            parse_instant(self._get_setting("end_date")),
        )

    def close(self):
        """Close the database connection."""
        if self.owns_connection:
            self.conn.close()
            logging.info("Database connection closed")
        else:
            logging.debug("Skipping close - connection not owned by this instance")
