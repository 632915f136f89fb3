"""
Destination host inventory client.
"""

import logging

from host_inventory_sync.clients.base import InventoryApiClient
from host_inventory_sync.errors import InventoryApiError, ResponseParseError
from host_inventory_sync.models import HostCreateRequest, HostCreateResult

logger = logging.getLogger(__name__)

RESPONSE_FORMAT_BULK = "bulk"
RESPONSE_FORMAT_LEGACY = "legacy"
RESPONSE_FORMATS = (RESPONSE_FORMAT_BULK, RESPONSE_FORMAT_LEGACY)


class HostInventoryClient(InventoryApiClient):
    """
    Creates host records in the destination inventory.

    The create response contract is chosen explicitly with ``response_format``:
    - bulk:   {"data": [{"status": 201, "host": {"id": ...}}]}
    - legacy: {"id": ...}
    """

    def __init__(self, api_url: str, response_format: str = RESPONSE_FORMAT_BULK, **kwargs):
        if response_format not in RESPONSE_FORMATS:
            raise ValueError(f"Unknown host inventory response format: {response_format}")
        super().__init__(**kwargs)
        self.api_url = api_url.rstrip("/")
        self.response_format = response_format

    def create_host(self, request: HostCreateRequest, identity: str) -> HostCreateResult:
        """
        Create one host record.

        Args:
            request: Host attributes derived from a VM
            identity: Encoded tenant identity token

        Returns:
            HostCreateResult with the created host id

        Raises:
            InventoryApiError: Transport failure or rejected entry
            ResponseParseError: Response does not match the configured format
        """
        url = f"{self.api_url}/hosts"
        body = self.request(
            "POST",
            url,
            identity,
            payload=[request.model_dump()],
            operation_name=f"Create host for {request.external_id}",
        )

        if self.response_format == RESPONSE_FORMAT_BULK:
            host_id = self._parse_bulk(body, url)
        else:
            host_id = self._parse_legacy(body, url)

        logger.info(f"Created host {host_id} for VM {request.external_id}")
        return HostCreateResult(id=str(host_id))

    def _parse_bulk(self, body, url: str):
        try:
            entry = body["data"][0]
        except (KeyError, IndexError, TypeError):
            raise ResponseParseError("Create host response has no data[0] entry", url=url)

        status = entry.get("status") if isinstance(entry, dict) else None
        if isinstance(status, int) and status >= 400:
            raise InventoryApiError(
                f"Host inventory rejected host: {entry.get('detail') or entry.get('title') or status}",
                status_code=status,
                url=url,
            )

        try:
            host_id = entry["host"]["id"]
        except (KeyError, TypeError):
            raise ResponseParseError("Create host response has no data[0].host.id", url=url)
        if not host_id:
            raise ResponseParseError("Create host response has an empty host id", url=url)
        return host_id

    def _parse_legacy(self, body, url: str):
        host_id = body.get("id") if isinstance(body, dict) else None
        if not host_id:
            raise ResponseParseError("Create host response has no 'id'", url=url)
        return host_id
