"""Domain exceptions."""


class DeepTerminalError(Exception):
    """Base class for errors raised by the alert checker."""


class AlertValidationError(DeepTerminalError, ValueError):
    """Alert definition rejected before it reaches the database."""


class NotificationError(DeepTerminalError):
    """A notification channel failed to deliver."""


class EmailDeliveryError(NotificationError):
    """SMTP exchange failed."""


class PushDeliveryError(NotificationError):
    """No web push subscription accepted the notification."""
