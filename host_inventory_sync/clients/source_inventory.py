"""
Source inventory client.

Reads VM records from the source inventory API and writes host linkages
back through its ingress API.
"""

import logging
from typing import Iterable, List, Sequence
from urllib.parse import urljoin

from pydantic import ValidationError

from host_inventory_sync.clients.base import InventoryApiClient
from host_inventory_sync.errors import ResponseParseError
from host_inventory_sync.models import LinkageUpdate, VmRecord

logger = logging.getLogger(__name__)

VMS_COLLECTION = "vms"
INVENTORY_SCHEMA = "Default"


class SourceInventoryClient(InventoryApiClient):
    """Client for the source-of-truth VM inventory."""

    def __init__(self, api_url: str, ingress_api_url: str, **kwargs):
        """
        Args:
            api_url: Read API base, e.g. http://host:3000/v0.1
            ingress_api_url: Ingress API base used for write-back
            **kwargs: timeout, verify_ssl, session (see InventoryApiClient)
        """
        super().__init__(**kwargs)
        self.api_url = api_url.rstrip("/")
        self.ingress_api_url = ingress_api_url.rstrip("/")

    def fetch_by_ids(self, ids: Iterable[str], identity: str) -> List[VmRecord]:
        """
        Fetch VM records for a set of ids in one filtered read.

        Ids without a matching record are logged and left out of the result;
        they are not an error.

        Args:
            ids: VM ids to fetch
            identity: Encoded tenant identity token

        Returns:
            List of VmRecord for the ids that exist
        """
        wanted = list(dict.fromkeys(str(vm_id) for vm_id in ids))
        if not wanted:
            return []

        url = f"{self.api_url}/vms"
        params = {"filter[id]": ",".join(wanted)}
        visited = set()
        records = {}

        while url and url not in visited:
            visited.add(url)
            body = self.request("GET", url, identity, params=params, operation_name="Fetch VMs")
            if not isinstance(body, dict) or not isinstance(body.get("data"), list):
                raise ResponseParseError("Fetch VMs response has no 'data' list", url=url)

            for item in body["data"]:
                try:
                    vm = VmRecord.model_validate(item)
                except ValidationError as e:
                    raise ResponseParseError(f"Malformed VM record in response: {e}", url=url) from e
                records.setdefault(vm.id, vm)

            next_link = (body.get("links") or {}).get("next")
            # The next link already carries the filter query
            url = urljoin(url, next_link) if next_link else None
            params = None

        for vm_id in wanted:
            if vm_id not in records:
                logger.info(f"VM {vm_id} not found in source inventory, skipping")

        return [records[vm_id] for vm_id in wanted if vm_id in records]

    def write_linkages(self, source_id: str, linkages: Sequence[LinkageUpdate], identity: str) -> None:
        """
        Write host linkages back to the source inventory as a partial update.

        Uses the ingress ``partial_data`` collection: only ``source_ref`` and
        ``host_inventory_uuid`` are touched on the named VMs. The replacing
        ``data`` collection would delete every VM not listed.

        Args:
            source_id: Source the event came from
            linkages: One entry per created host, must not be empty
            identity: Encoded tenant identity token
        """
        if not linkages:
            raise ValueError("write_linkages called without linkages")

        inventory = {
            "schema": {"name": INVENTORY_SCHEMA},
            "source": source_id,
            "collections": [
                {
                    "name": VMS_COLLECTION,
                    "partial_data": [linkage.to_wire() for linkage in linkages],
                }
            ],
        }
        self.request(
            "POST",
            f"{self.ingress_api_url}/inventory",
            identity,
            payload=inventory,
            operation_name="Save VM linkages",
        )
        logger.info(f"Wrote {len(linkages)} host linkage(s) to source {source_id}")
