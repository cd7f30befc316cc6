"""Association reconciler.

Per run: UNKNOWN -> CHECKED -> {ALREADY_ASSOCIATED | NEEDS_ASSOCIATION} -> DONE.

Matching is by ``allocation_id`` only. Addresses attached by other tooling are
inspected but never disassociated; associating our own record is additive.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from ip_provisioner.common import _logger, error_message, is_retryable
from ip_provisioner.errors import AssociationFailed, LookupFailed
from ip_provisioner.models import AddressRecord, ReconcileOutcome, ReconcileState


def decide(own: AddressRecord, associated: Sequence[AddressRecord]) -> ReconcileState:
    """Pure decision step: does ``own`` still need to be associated?"""
    if not associated:
        return ReconcileState.NEEDS_ASSOCIATION
    for addr in associated:
        if addr.same_allocation(own):
            return ReconcileState.ALREADY_ASSOCIATED
    return ReconcileState.NEEDS_ASSOCIATION


class AssociationReconciler:
    """Checks and (if needed) establishes the record -> instance association."""

    def __init__(
        self,
        ec2,
        allow_reassociation: bool = True,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.ec2 = ec2
        self.allow_reassociation = allow_reassociation
        self.log = _logger(logger, __name__)
        self.state = ReconcileState.UNKNOWN

    def lookup(self, instance_id: str) -> List[AddressRecord]:
        """Addresses the provider currently reports as associated with ``instance_id``."""
        try:
            resp = self.ec2.describe_addresses(
                Filters=[{"Name": "instance-id", "Values": [instance_id]}]
            )
        except (ClientError, BotoCoreError) as exc:
            retryable = is_retryable(exc)
            raise LookupFailed(
                f"describe_addresses for {instance_id} failed: {error_message(exc)} "
                f"(retryable {retryable})",
                retryable=retryable,
            ) from exc

        found: List[AddressRecord] = []
        for addr in resp.get("Addresses", []):
            if not addr.get("AllocationId"):
                self.log.warning("[reconciler] skipping address without allocation id: %s", addr)
                continue
            found.append(AddressRecord.from_api(addr))
        return found

    def associate(self, allocation_id: str, instance_id: str) -> str:
        """Single-attempt ``AssociateAddress``; returns the association id."""
        try:
            resp = self.ec2.associate_address(
                AllocationId=allocation_id,
                InstanceId=instance_id,
                AllowReassociation=self.allow_reassociation,
            )
        except (ClientError, BotoCoreError) as exc:
            retryable = is_retryable(exc)
            self.log.error(
                "[reconciler] associate_address %s -> %s failed: %s (retryable %s)",
                allocation_id, instance_id, error_message(exc), retryable,
            )
            raise AssociationFailed(
                f"associate_address failed: {error_message(exc)} (retryable {retryable})",
                retryable=retryable,
            ) from exc
        return resp.get("AssociationId", "")

    def reconcile(self, own: AddressRecord, instance_id: str) -> ReconcileOutcome:
        self.state = ReconcileState.UNKNOWN
        self.log.info(
            "[reconciler] checking whether %s already has elastic IP %s",
            instance_id, own.allocation_id,
        )
        associated = self.lookup(instance_id)
        self.state = ReconcileState.CHECKED

        if associated:
            self.log.info(
                "[reconciler] existing addresses on %s: %s",
                instance_id, ", ".join(a.allocation_id for a in associated),
            )
        decision = decide(own, associated)
        self.state = decision

        association_id = None
        if decision is ReconcileState.ALREADY_ASSOCIATED:
            self.log.info(
                "[reconciler] %s already has allocation %s -- no need to associate once more",
                instance_id, own.allocation_id,
            )
        else:
            self.log.info("[reconciler] associating %s to %s", own.allocation_id, instance_id)
            association_id = self.associate(own.allocation_id, instance_id)
            self.log.info("[reconciler] association id %s", association_id or "?")

        self.state = ReconcileState.DONE
        return ReconcileOutcome(decision=decision, state=self.state, association_id=association_id)
