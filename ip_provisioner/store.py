"""Record store: the local address record used as an idempotency cache.

Stored as a small YAML document::

    allocation_id: eipalloc-0123456789abcdef0
    public_ip: 203.0.113.10
    tags:
      Id: TEST-ID
      Kind: aws-ip-provisioner

A file that exists but cannot be parsed is an operator-visible error
(:class:`RecordCorrupt`), never a trigger to allocate again.
"""

from __future__ import annotations

import logging
import os
import tempfile
from typing import Dict, Optional

import yaml

from ip_provisioner.common import _logger
from ip_provisioner.errors import PersistFailed, RecordCorrupt
from ip_provisioner.models import AddressRecord


class FileRecordStore:
    """YAML file backed store; one record per path."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.log = _logger(logger, __name__)

    def exists(self, path: str) -> bool:
        # Anything at the path (even a directory) must go through load().
        return os.path.lexists(path)

    def load(self, path: str) -> AddressRecord:
        try:
            with open(path, "r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except yaml.YAMLError as exc:
            raise RecordCorrupt(path, f"invalid YAML ({exc})") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise RecordCorrupt(path, f"unreadable ({exc})") from exc
        try:
            record = AddressRecord.from_dict(data)
        except ValueError as exc:
            raise RecordCorrupt(path, str(exc)) from exc
        self.log.debug("[store] loaded %s from %s", record.allocation_id, path)
        return record

    def persist(self, record: AddressRecord, path: str) -> None:
        """Atomically replace ``path`` with ``record``."""
        directory = os.path.dirname(os.path.abspath(path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=directory, prefix=".eip-", suffix=".tmp", delete=False
            ) as handle:
                tmp_path = handle.name
                yaml.safe_dump(record.to_dict(), handle, default_flow_style=False, sort_keys=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as exc:
            raise PersistFailed(path, str(exc)) from exc
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
        self.log.info("[store] persisted %s to %s", record.allocation_id, path)


class MemoryRecordStore:
    """In-memory store with the same contract, keyed by path."""

    def __init__(self, records: Optional[Dict[str, object]] = None) -> None:
        # Values are the stored form (dicts), so corrupt content can be seeded.
        self.records: Dict[str, object] = dict(records or {})
        self.persist_calls = 0

    def exists(self, path: str) -> bool:
        return path in self.records

    def load(self, path: str) -> AddressRecord:
        if path not in self.records:
            raise RecordCorrupt(path, "no record stored")
        try:
            return AddressRecord.from_dict(self.records[path])
        except ValueError as exc:
            raise RecordCorrupt(path, str(exc)) from exc

    def persist(self, record: AddressRecord, path: str) -> None:
        self.persist_calls += 1
        self.records[path] = record.to_dict()
