"""Base exception type shared by services.

Raise subclasses from business logic; ``add_exception_handlers`` turns them
into JSON responses at the edge.
"""

from typing import Optional


class ServiceError(Exception):
    """An error with a caller-facing message and HTTP status."""

    status_code: int = 400
    code: str = "SERVICE_ERROR"
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __repr__(self):
        return f"<{type(self).__name__} {self.status_code}: {self.message}>"
