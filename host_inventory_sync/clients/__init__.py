"""HTTP clients for the source and destination inventories"""

from .base import InventoryApiClient
from .host_inventory import HostInventoryClient
from .source_inventory import SourceInventoryClient

__all__ = [
    'InventoryApiClient',
    'HostInventoryClient',
    'SourceInventoryClient',
]
