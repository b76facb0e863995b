"""
Domain exceptions for the News Agency API.

``ResourceNotFoundError`` is translated to a 404 response by the handler
registered in ``app.main``.  The ``NotificationError`` family never leaves
the notification subsystem: every task catches it at its own boundary and
logs it.
"""


class ApplicationError(Exception):
    """Base exception for all application errors"""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ResourceNotFoundError(ApplicationError):
    """Raised when a referenced row does not exist"""

    def __init__(self, resource: str, resource_id):
        details = {"resource": resource, "id": resource_id}
        super().__init__(f"{resource} not found with ID: {resource_id}", details)


class NotificationError(ApplicationError):
    """Base exception for notification task failures"""


class UnresolvedReferenceError(NotificationError):
    """Raised when a comment reaches the dispatcher without a required reference"""

    def __init__(self, comment_id, reference: str):
        details = {"comment_id": comment_id, "reference": reference}
        super().__init__(
            f"Comment {comment_id} has no resolved {reference} reference", details
        )


class DeliveryError(NotificationError):
    """Raised by a notifier when a notification could not be delivered"""

    def __init__(self, comment_id, kind: str, message: str | None = None):
        details = {"comment_id": comment_id, "kind": kind}
        msg = message or f"Failed to deliver {kind} notification for comment {comment_id}"
        super().__init__(msg, details)
