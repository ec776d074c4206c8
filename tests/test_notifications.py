"""Tests for notification system."""

import subprocess
from unittest.mock import MagicMock, patch

from synchrotron.notifications import (
    APP_NAME,
    Notification,
    NotificationType,
    notify_error,
    notify_sync_complete,
    send_notification,
)


class TestNotification:
    """Tests for Notification dataclass."""

    def test_notification_creation(self) -> None:
        """Should create notification with all fields."""
        notif = Notification(
            title="Test Title",
            message="Test message",
            type=NotificationType.ERROR,
        )
        assert notif.title == "Test Title"
        assert notif.message == "Test message"
        assert notif.type == NotificationType.ERROR

    def test_notification_default_type(self) -> None:
        """Should default to INFO type."""
        notif = Notification(title="Title", message="Message")
        assert notif.type == NotificationType.INFO


class TestNotificationHelpers:
    """Tests for notification helper functions."""

    @patch("synchrotron.notifications.send_notification")
    def test_notify_sync_complete(self, mock_send: MagicMock) -> None:
        """Should report the item count and destination."""
        mock_send.return_value = True

        result = notify_sync_complete(3, "host:/srv/site")

        assert result is True
        notification = mock_send.call_args[0][0]
        assert notification.title == APP_NAME
        assert notification.message == "Synced 3 items to host:/srv/site"
        assert notification.type == NotificationType.INFO

    @patch("synchrotron.notifications.send_notification")
    def test_notify_sync_complete_singular(self, mock_send: MagicMock) -> None:
        notify_sync_complete(1, "dest")
        assert mock_send.call_args[0][0].message == "Synced 1 item to dest"

    @patch("synchrotron.notifications.send_notification")
    def test_notify_error(self, mock_send: MagicMock) -> None:
        """Should send error notification."""
        mock_send.return_value = True

        result = notify_error("rsync exited with error code 1")

        assert result is True
        notification = mock_send.call_args[0][0]
        assert notification.message == "Fatal error: rsync exited with error code 1"
        assert notification.type == NotificationType.ERROR


class TestSendNotification:
    """Tests for platform dispatch."""

    @patch("synchrotron.notifications.platform.system", return_value="Linux")
    @patch("synchrotron.notifications.subprocess.run")
    def test_linux_uses_notify_send(self, mock_run: MagicMock, _mock_system: MagicMock) -> None:
        result = send_notification(Notification(title="T", message="M", type=NotificationType.ERROR))

        assert result is True
        args = mock_run.call_args[0][0]
        assert args[0] == "notify-send"
        assert "critical" in args
        assert args[-2:] == ["T", "M"]

    @patch("synchrotron.notifications.platform.system", return_value="Linux")
    @patch("synchrotron.notifications.subprocess.run", side_effect=FileNotFoundError)
    def test_linux_missing_notify_send(self, _mock_run: MagicMock, _mock_system: MagicMock) -> None:
        """Should fail quietly when notify-send isn't installed."""
        assert send_notification(Notification(title="T", message="M")) is False

    @patch("synchrotron.notifications.platform.system", return_value="Darwin")
    @patch("synchrotron.notifications.subprocess.run")
    def test_macos_escapes_quotes(self, mock_run: MagicMock, _mock_system: MagicMock) -> None:
        send_notification(Notification(title="T", message='say "hi"'))

        args = mock_run.call_args[0][0]
        assert args[:2] == ["osascript", "-e"]
        assert 'say \\"hi\\"' in args[2]

    @patch("synchrotron.notifications.platform.system", return_value="Darwin")
    @patch(
        "synchrotron.notifications.subprocess.run",
        side_effect=subprocess.CalledProcessError(1, "osascript"),
    )
    def test_macos_failure(self, _mock_run: MagicMock, _mock_system: MagicMock) -> None:
        assert send_notification(Notification(title="T", message="M")) is False

    @patch("synchrotron.notifications.platform.system", return_value="Plan9")
    def test_unsupported_platform(self, _mock_system: MagicMock) -> None:
        assert send_notification(Notification(title="T", message="M")) is False
