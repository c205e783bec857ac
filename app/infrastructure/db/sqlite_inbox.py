"""
SQLite-backed notification and messaging sinks.

One class implements both NotificationSink and MessagingSink, since both
are append-only inbox tables living in the same database as the catalog.
"""

import logging
import sqlite3
from datetime import datetime, UTC
from pathlib import Path
from typing import List, Optional
from uuid import UUID

from app.domain.entities import Message, Notification
from app.domain.ports import MessagingSink, NotificationSink
from app.infrastructure.db.connection import connect, init_schema
from app.infrastructure.db.sqlite_catalog_store import from_db_timestamp, to_db_timestamp

logger = logging.getLogger(__name__)


class SqliteInbox(NotificationSink, MessagingSink):
    """Stores notifications and direct messages in SQLite."""

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        init_schema(self._db_path)

    def _write(self, sql: str, params: tuple) -> None:
        conn = connect(self._db_path)
        try:
            with conn:
                conn.execute(sql, params)
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to write to inbox: {e}") from e
        finally:
            conn.close()

    def _read(self, sql: str, params: tuple) -> List[sqlite3.Row]:
        conn = connect(self._db_path)
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise RuntimeError(f"Failed to read inbox: {e}") from e
        finally:
            conn.close()

    def notify(
        self,
        user_id: UUID,
        type: str,
        content: str,
        related_id: Optional[UUID] = None,
    ) -> None:
        self._write(
            """
            INSERT INTO notifications (user_id, type, content, related_id, is_read, created_at)
            VALUES (?, ?, ?, ?, 0, ?)
            """,
            (
                str(user_id),
                str(getattr(type, "value", type)),
                content,
                str(related_id) if related_id else None,
                to_db_timestamp(datetime.now(UTC)),
            ),
        )
        logger.debug(f"Notified {user_id}: {content}")

    def send_message(self, sender_id: UUID, receiver_id: UUID, content: str) -> None:
        # Validates non-empty content before touching the database
        message = Message(sender_id=sender_id, receiver_id=receiver_id, content=content)
        self._write(
            """
            INSERT INTO messages (sender_id, receiver_id, content, is_read, created_at)
            VALUES (?, ?, ?, 0, ?)
            """,
            (
                str(message.sender_id),
                str(message.receiver_id),
                message.content,
                to_db_timestamp(message.created_at),
            ),
        )

    def list_notifications(self, user_id: UUID) -> List[Notification]:
        """Notifications for a user, newest first."""
        rows = self._read(
            "SELECT * FROM notifications WHERE user_id = ? ORDER BY id DESC",
            (str(user_id),),
        )
        return [
            Notification(
                user_id=UUID(row["user_id"]),
                type=row["type"],
                content=row["content"],
                related_id=UUID(row["related_id"]) if row["related_id"] else None,
                is_read=bool(row["is_read"]),
                created_at=from_db_timestamp(row["created_at"]),
            )
            for row in rows
        ]

    def list_messages(self, user_id: UUID) -> List[Message]:
        """Messages sent to or by a user, newest first."""
        rows = self._read(
            "SELECT * FROM messages WHERE sender_id = ? OR receiver_id = ? ORDER BY id DESC",
            (str(user_id), str(user_id)),
        )
        return [
            Message(
                sender_id=UUID(row["sender_id"]),
                receiver_id=UUID(row["receiver_id"]),
                content=row["content"],
                is_read=bool(row["is_read"]),
                created_at=from_db_timestamp(row["created_at"]),
            )
            for row in rows
        ]
