"""Error taxonomy for a provisioning run.

Every error is terminal for the current run. ``retryable`` is a hint for the
process supervisor (restart policy), never acted upon in-process.
"""

from __future__ import annotations


class ProvisionerError(Exception):
    """Base exception for provisioning failures."""

    retryable: bool = False

    def __init__(self, message: str, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(message)


class ConfigError(ProvisionerError):
    """Invalid run configuration."""

    pass


class IdentityUnavailable(ProvisionerError):
    """Instance metadata endpoint unreachable or returned malformed data."""

    pass


class RecordCorrupt(ProvisionerError):
    """Local address record exists but does not parse into a record."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"address record {path} is corrupt: {reason}")


class PersistFailed(ProvisionerError):
    """Writing the local address record failed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        super().__init__(f"failed to persist address record {path}: {reason}")


class AllocationFailed(ProvisionerError):
    """AllocateAddress (or tag recovery) failed."""

    pass


class LookupFailed(ProvisionerError):
    """DescribeAddresses by instance id failed."""

    pass


class AssociationFailed(ProvisionerError):
    """AssociateAddress failed."""

    pass
