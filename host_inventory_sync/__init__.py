"""
Host Inventory Sync

Consumes VM change events from the source inventory and makes sure every
VM has a matching record in the host inventory, writing the resulting host
id back to the source.
"""

__version__ = "1.0.0"

from .errors import (
    HostInventorySyncError,
    InventoryApiError,
    ResponseParseError,
    EventValidationError,
)
from .identity import encode_identity
from .models import ChangeEvent, SyncResult, SyncStatus
from .reconciler import HostInventoryReconciler

__all__ = [
    "HostInventorySyncError",
    "InventoryApiError",
    "ResponseParseError",
    "EventValidationError",
    "encode_identity",
    "ChangeEvent",
    "SyncResult",
    "SyncStatus",
    "HostInventoryReconciler",
]
