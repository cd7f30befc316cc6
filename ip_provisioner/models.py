"""Data model: address records, tags and per-run state."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from ip_provisioner.common import tags_to_dict


@dataclass(frozen=True)
class Tag:
    """One caller-supplied key/value label."""

    key: str
    value: str

    def __str__(self) -> str:
        return f"{self.key}={self.value}"


@dataclass(frozen=True)
class AddressRecord:
    """A persistent (Elastic) IP address.

    ``allocation_id`` is the durable identity. ``public_ip`` is informational and
    never compared.
    """

    allocation_id: str
    public_ip: str = ""
    tags: Dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    def same_allocation(self, other: "AddressRecord") -> bool:
        return self.allocation_id == other.allocation_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allocation_id": self.allocation_id,
            "public_ip": self.public_ip,
            "tags": dict(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "AddressRecord":
        """Build a record from its stored form.

        Raises:
            ValueError: when ``data`` is not a mapping or lacks a usable
                ``allocation_id``.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        alloc = data.get("allocation_id")
        if not isinstance(alloc, str) or not alloc.strip():
            raise ValueError("missing or empty 'allocation_id'")
        public_ip = data.get("public_ip") or ""
        if not isinstance(public_ip, str):
            raise ValueError("'public_ip' must be a string")
        tags = data.get("tags") or {}
        if not isinstance(tags, Mapping):
            raise ValueError("'tags' must be a mapping")
        return cls(
            allocation_id=alloc.strip(),
            public_ip=public_ip,
            tags={str(k): "" if v is None else str(v) for k, v in tags.items()},
        )

    @classmethod
    def from_api(cls, addr: Mapping[str, Any]) -> "AddressRecord":
        """Map one EC2 ``Addresses[]`` entry (or AllocateAddress response)."""
        return cls(
            allocation_id=str(addr.get("AllocationId") or ""),
            public_ip=str(addr.get("PublicIp") or ""),
            tags=tags_to_dict(addr.get("Tags")),
        )


class RecordSource(str, enum.Enum):
    """Where the record used for this run came from."""

    LOADED = "loaded"
    ALLOCATED = "allocated"
    RECOVERED = "recovered"


class ReconcileState(str, enum.Enum):
    """Association reconciler states (per run, never persisted)."""

    UNKNOWN = "unknown"
    CHECKED = "checked"
    ALREADY_ASSOCIATED = "already_associated"
    NEEDS_ASSOCIATION = "needs_association"
    DONE = "done"


@dataclass(frozen=True)
class ReconcileOutcome:
    """Result of one reconcile pass."""

    decision: ReconcileState
    state: ReconcileState
    association_id: Optional[str] = None

    @property
    def associated_now(self) -> bool:
        return self.decision is ReconcileState.NEEDS_ASSOCIATION


@dataclass(frozen=True)
class RecordResolution:
    """The loaded-or-allocated record, before it is persisted."""

    record: AddressRecord
    source: RecordSource


@dataclass(frozen=True)
class RunReport:
    """Summary of a successful run."""

    instance_id: str
    record: AddressRecord
    source: RecordSource
    outcome: ReconcileOutcome
    slept_seconds: float = 0.0

    def summary(self) -> str:
        return (
            f"instance={self.instance_id} allocation_id={self.record.allocation_id} "
            f"public_ip={self.record.public_ip or '?'} source={self.source.value} "
            f"decision={self.outcome.decision.value} state={self.outcome.state.value}"
        )
