"""Address allocator: creates a tagged VPC Elastic IP."""

from __future__ import annotations

import logging
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ip_provisioner.common import (
    _client_region,
    _logger,
    error_message,
    is_retryable,
    tag_filters,
    tag_specifications,
)
from ip_provisioner.errors import AllocationFailed
from ip_provisioner.models import AddressRecord, Tag


class AddressAllocator:
    """Wraps ``AllocateAddress`` and the tag lookup used for recovery.

    Never retries; the ``retryable`` flag on :class:`AllocationFailed` is only a
    hint for whoever restarts the process.
    """

    def __init__(self, ec2, logger: Optional[logging.Logger] = None) -> None:
        self.ec2 = ec2
        self.log = _logger(logger, __name__)

    def allocate(self, id_tag: Tag, kind_tag: Tag) -> AddressRecord:
        """Create exactly one new address tagged with ``id_tag`` and ``kind_tag``."""
        self.log.info(
            "[allocator] allocating elastic IP in %s with tags %s, %s",
            _client_region(self.ec2) or "?", id_tag, kind_tag,
        )
        try:
            resp = self.ec2.allocate_address(
                Domain="vpc",
                TagSpecifications=tag_specifications("elastic-ip", (id_tag, kind_tag)),
            )
        except (ClientError, BotoCoreError) as exc:
            retryable = is_retryable(exc)
            self.log.error(
                "[allocator] allocate_address failed: %s (retryable %s)", error_message(exc), retryable
            )
            raise AllocationFailed(
                f"allocate_address failed: {error_message(exc)} (retryable {retryable})",
                retryable=retryable,
            ) from exc

        alloc_id = resp.get("AllocationId")
        if not alloc_id:
            raise AllocationFailed("allocate_address returned no AllocationId", retryable=False)
        record = AddressRecord(
            allocation_id=alloc_id,
            public_ip=resp.get("PublicIp", ""),
            tags={id_tag.key: id_tag.value, kind_tag.key: kind_tag.value},
        )
        self.log.info("[allocator] allocated %s (%s)", record.allocation_id, record.public_ip)
        return record

    def find_by_tags(self, id_tag: Tag, kind_tag: Tag) -> List[AddressRecord]:
        """Return every address carrying both tags (recovery after record loss)."""
        try:
            resp = self.ec2.describe_addresses(Filters=tag_filters((id_tag, kind_tag)))
        except (ClientError, BotoCoreError) as exc:
            retryable = is_retryable(exc)
            raise AllocationFailed(
                f"describe_addresses by tags failed: {error_message(exc)} (retryable {retryable})",
                retryable=retryable,
            ) from exc
        found = [AddressRecord.from_api(a) for a in resp.get("Addresses", []) if a.get("AllocationId")]
        self.log.info("[allocator] %d address(es) tagged %s, %s", len(found), id_tag, kind_tag)
        return found
