"""
Tests for SqliteInbox (notification and message sinks).
"""

import pytest

from app.domain.utils.uuid7 import uuid7
from app.domain.value_objects import NotificationType
from app.infrastructure.db.sqlite_inbox import SqliteInbox


@pytest.fixture
def inbox(tmp_path):
    return SqliteInbox(tmp_path / "catalog.db")


class TestNotifications:
    def test_notify_then_list(self, inbox):
        # Arrange
        user_id, book_id = uuid7(), uuid7()

        # Act
        inbox.notify(user_id, "exchange_response", 'Your request for "Dune" has been accepted', book_id)

        # Assert
        [notification] = inbox.list_notifications(user_id)
        assert notification.type == "exchange_response"
        assert notification.content == 'Your request for "Dune" has been accepted'
        assert notification.related_id == book_id
        assert notification.is_read is False

    def test_enum_type_stored_as_value(self, inbox):
        user_id = uuid7()

        inbox.notify(user_id, NotificationType.EXCHANGE_DONE, "Done")

        assert inbox.list_notifications(user_id)[0].type == "exchange_done"

    def test_newest_first_and_scoped_to_user(self, inbox):
        user_id = uuid7()
        inbox.notify(user_id, "exchange_cancelled", "first")
        inbox.notify(user_id, "exchange_done", "second")
        inbox.notify(uuid7(), "exchange_done", "someone else")

        assert [n.content for n in inbox.list_notifications(user_id)] == ["second", "first"]


class TestMessages:
    def test_send_message_visible_to_both_parties(self, inbox):
        sender, receiver = uuid7(), uuid7()

        inbox.send_message(sender, receiver, "Hi! I'm interested in your book.")

        assert inbox.list_messages(sender)[0].content == "Hi! I'm interested in your book."
        assert inbox.list_messages(receiver)[0].sender_id == sender
        assert inbox.list_messages(uuid7()) == []

    def test_blank_message_rejected(self, inbox):
        with pytest.raises(ValueError, match="cannot be empty"):
            inbox.send_message(uuid7(), uuid7(), "  ")
