"""
Host Inventory Sync Errors

Distinguishes the failure kinds a change-event message can hit so the
reconciler and the consumer can log (and tests can assert on) which path
was taken.
"""

from typing import Optional


class HostInventorySyncError(Exception):
    """Base exception for inventory API and message handling failures"""

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        self.url = url
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        """Short failure kind used in log lines."""
        return "sync"


class InventoryApiError(HostInventorySyncError):
    """Raised on transport failures, timeouts and non-2xx responses"""

    @property
    def kind(self) -> str:
        return "transport"


class ResponseParseError(HostInventorySyncError):
    """Raised when a response body is not JSON or lacks the expected fields"""

    @property
    def kind(self) -> str:
        return "parse"


class EventValidationError(HostInventorySyncError):
    """Raised when an inbound message cannot be decoded into a change event"""

    @property
    def kind(self) -> str:
        return "validation"
