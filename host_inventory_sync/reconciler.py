"""
Host Inventory Reconciler

Handles one change event end to end:
1. Validate the tenant and collect the VM ids the event touched.
2. Fetch those VMs from the source inventory in one filtered read.
3. Create a destination host for every VM that has no linkage yet.
4. Write all new linkages back to the source in one partial update.

A failed host create only drops that VM for this round. A failed fetch or
write-back abandons the message; nothing is retried.
"""

import concurrent.futures
import logging
from typing import List, Optional, Tuple

from host_inventory_sync.clients.host_inventory import HostInventoryClient
from host_inventory_sync.clients.source_inventory import SourceInventoryClient
from host_inventory_sync.errors import HostInventorySyncError
from host_inventory_sync.identity import encode_identity
from host_inventory_sync.models import (
    ChangeEvent,
    HostCreateRequest,
    LinkageUpdate,
    SyncResult,
    SyncStatus,
    VmRecord,
)

logger = logging.getLogger(__name__)


class HostInventoryReconciler:
    """Links source inventory VMs to destination host records."""

    def __init__(
        self,
        source_client: SourceInventoryClient,
        host_client: HostInventoryClient,
        create_workers: int = 1,
    ):
        """
        Args:
            source_client: Reads VMs and writes linkages
            host_client: Creates destination hosts
            create_workers: Max parallel host creates per event (1 = sequential)
        """
        self.source_client = source_client
        self.host_client = host_client
        self.create_workers = max(1, create_workers)

    def process(self, event: ChangeEvent) -> SyncResult:
        """
        Reconcile one change event.

        API and parse failures are logged and reported in the returned
        SyncResult; they are never raised.

        Args:
            event: Decoded change event

        Returns:
            SyncResult describing which path was taken
        """
        if not event.tenant_account:
            logger.error(f"Skipping payload because of missing :external_tenant (source: {event.source_id})")
            return SyncResult(status=SyncStatus.INVALID)

        vm_ids = event.vm_ids()
        if not vm_ids:
            logger.debug(f"No VMs in event from source {event.source_id}, nothing to do")
            return SyncResult(status=SyncStatus.EMPTY)

        result = SyncResult(status=SyncStatus.UP_TO_DATE, vm_ids=vm_ids)
        logger.info(f"Processing {len(vm_ids)} VM(s) from source {event.source_id} for tenant {event.tenant_account}")

        identity = encode_identity(event.tenant_account)
        try:
            vms = self.source_client.fetch_by_ids(vm_ids, identity)

            to_create = []
            for vm in vms:
                if vm.is_linked:
                    logger.debug(f"VM {vm.id} ({vm.source_ref}) already linked to host {vm.destination_host_id}")
                    continue
                to_create.append(vm)

            if not to_create:
                logger.info(f"All {len(vms)} fetched VM(s) already linked")
                return result

            for vm, linkage, error in self._create_hosts(to_create, event.tenant_account, identity):
                if linkage:
                    result.linkages.append(linkage)
                else:
                    result.failed_source_refs.append(vm.source_ref)
                    result.error = error

            if not result.linkages:
                logger.error(f"No hosts created for {len(to_create)} VM(s), skipping write-back")
                result.status = SyncStatus.FAILED
                return result

            try:
                self.source_client.write_linkages(event.source_id, result.linkages, identity)
            except HostInventorySyncError:
                for linkage in result.linkages:
                    logger.error(
                        f"Host {linkage.destination_host_id} created for VM {linkage.source_ref} "
                        f"but linkage was not saved"
                    )
                raise

            result.status = SyncStatus.LINKED
            return result

        except HostInventorySyncError as e:
            logger.exception(f"Failed to process event from source {event.source_id} ({e.kind}): {e}")
            result.status = SyncStatus.FAILED
            result.error = e
            return result

    def _create_hosts(
        self, vms: List[VmRecord], account: str, identity: str
    ) -> List[Tuple[VmRecord, Optional[LinkageUpdate], Optional[HostInventorySyncError]]]:
        """Create hosts for VMs, returning (vm, linkage, error) in input order."""
        if self.create_workers == 1 or len(vms) == 1:
            return [self._create_host(vm, account, identity) for vm in vms]

        results = [None] * len(vms)
        max_workers = min(self.create_workers, len(vms))
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {
                executor.submit(self._create_host, vm, account, identity): index
                for index, vm in enumerate(vms)
            }
            for future in concurrent.futures.as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        return results

    def _create_host(
        self, vm: VmRecord, account: str, identity: str
    ) -> Tuple[VmRecord, Optional[LinkageUpdate], Optional[HostInventorySyncError]]:
        request = HostCreateRequest.for_vm(vm, account)
        try:
            created = self.host_client.create_host(request, identity)
        except HostInventorySyncError as e:
            logger.error(f"Failed to create host for VM {vm.id} ({vm.source_ref}), {e.kind} error: {e}")
            return vm, None, e
        return vm, LinkageUpdate(source_ref=vm.source_ref, destination_host_id=created.id), None
