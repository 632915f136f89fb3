"""
Pydantic models for change events, VM records and host linkages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def _collect_ids(entries: Any) -> List[str]:
    """Pull ``id`` values out of a list of ``{"id": ...}`` delta entries."""
    ids = []
    for entry in entries or []:
        if isinstance(entry, dict) and entry.get("id") is not None:
            ids.append(str(entry["id"]))
    return ids


class VmDeltas(BaseModel):
    """VM ids touched by one change event, per change kind."""
    created: List[str] = []
    updated: List[str] = []
    deleted: List[str] = []

    @classmethod
    def from_payload(cls, vms: Optional[Dict[str, Any]]) -> "VmDeltas":
        vms = vms or {}
        return cls(
            created=_collect_ids(vms.get("created")),
            updated=_collect_ids(vms.get("updated")),
            deleted=_collect_ids(vms.get("deleted")),
        )


class ChangeEvent(BaseModel):
    """Change notification consumed from the persister output topic."""
    tenant_account: Optional[str] = None
    source_id: Optional[str] = None
    vm_deltas: VmDeltas = Field(default_factory=VmDeltas)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ChangeEvent":
        """
        Build a ChangeEvent from a decoded queue message.

        Args:
            payload: Message body, e.g.
                {"external_tenant": "...", "source": "...",
                 "payload": {"vms": {"created": [{"id": 1}], ...}}}

        Returns:
            ChangeEvent; a missing ``payload.vms`` gives empty deltas
        """
        inner = payload.get("payload") or {}
        vms = inner.get("vms") if isinstance(inner, dict) else None
        return cls(
            tenant_account=payload.get("external_tenant"),
            source_id=payload.get("source"),
            vm_deltas=VmDeltas.from_payload(vms if isinstance(vms, dict) else None),
        )

    def vm_ids(self) -> List[str]:
        """De-duplicated union of updated, created and deleted VM ids."""
        seen = {}
        for vm_id in self.vm_deltas.updated + self.vm_deltas.created + self.vm_deltas.deleted:
            seen.setdefault(vm_id, None)
        return list(seen)


class VmRecord(BaseModel):
    """VM as returned by the source inventory API."""
    id: str
    source_ref: str
    mac_addresses: List[str] = []
    display_name: Optional[str] = Field(default=None, alias="name")
    destination_host_id: Optional[str] = Field(default=None, alias="host_inventory_uuid")

    class Config:
        populate_by_name = True

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value

    @field_validator("mac_addresses", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or []

    @property
    def is_linked(self) -> bool:
        """True once a destination host id has been written back."""
        return bool(self.destination_host_id)


class HostCreateRequest(BaseModel):
    """Body entry for the host inventory create call."""
    display_name: Optional[str] = None
    external_id: str
    mac_addresses: List[str] = []
    account: str

    @classmethod
    def for_vm(cls, vm: VmRecord, account: str) -> "HostCreateRequest":
        return cls(
            display_name=vm.display_name,
            external_id=vm.source_ref,
            mac_addresses=list(vm.mac_addresses),
            account=account,
        )


class HostCreateResult(BaseModel):
    """Identifier of a host created in the host inventory."""
    id: str


class LinkageUpdate(BaseModel):
    """Cross-reference written back to the source inventory."""
    source_ref: str
    destination_host_id: str

    def to_wire(self) -> Dict[str, str]:
        return {"source_ref": self.source_ref, "host_inventory_uuid": self.destination_host_id}


class SyncStatus(str, Enum):
    INVALID = "invalid"        # tenant account missing
    EMPTY = "empty"            # no VM ids in the event
    UP_TO_DATE = "up_to_date"  # every fetched VM already linked
    LINKED = "linked"          # linkages written back
    FAILED = "failed"


@dataclass
class SyncResult:
    """Outcome of reconciling one change event."""
    status: SyncStatus
    vm_ids: List[str] = field(default_factory=list)
    linkages: List[LinkageUpdate] = field(default_factory=list)
    failed_source_refs: List[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def error_kind(self) -> Optional[str]:
        return getattr(self.error, "kind", None) if self.error else None
