"""Orchestrator: sequences one provisioning run.

Order is fixed: identity -> jitter -> load-or-allocate -> persist -> reconcile.
Each step feeds the next, and any failure ends the run (no partial retry).
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError

from ip_provisioner import config as settings
from ip_provisioner.allocator import AddressAllocator
from ip_provisioner.common import _logger, error_message, is_retryable
from ip_provisioner.config import ProvisionerConfig
from ip_provisioner.errors import AllocationFailed, ConfigError
from ip_provisioner.identity import IdentityResolver
from ip_provisioner.models import RecordResolution, RecordSource, RunReport
from ip_provisioner.reconciler import AssociationReconciler
from ip_provisioner.store import FileRecordStore


def jitter_seconds(max_jitter: int, rng: random.Random) -> float:
    """Uniform draw in ``[0, max_jitter)``; 0 when jitter is disabled."""
    if max_jitter <= 0:
        return 0.0
    return rng.random() * max_jitter


class Orchestrator:
    """Runs the provisioning sequence against injected collaborators."""

    def __init__(
        self,
        cfg: ProvisionerConfig,
        resolver,
        store,
        allocator,
        reconciler,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg.validate()
        self.resolver = resolver
        self.store = store
        self.allocator = allocator
        self.reconciler = reconciler
        self.sleep = sleep
        self.rng = rng or random.Random()
        self.log = _logger(logger, __name__)
        self.log.setLevel(getattr(logging, self.cfg.log_level.upper()))

    @classmethod
    def from_config(
        cls,
        cfg: ProvisionerConfig,
        resolver: Optional[IdentityResolver] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "Orchestrator":
        """Wire the real IMDS resolver, YAML store and boto3 EC2 client.

        Every collaborator shares one logger, set to ``cfg.log_level``.
        """
        logger = logger or logging.getLogger("ip_provisioner.run")
        resolver = resolver or IdentityResolver(logger=logger)
        region = cfg.region or settings.default_region() or resolver.region()
        try:
            ec2 = boto3.client("ec2", region_name=region, config=settings.SDK_CONFIG)
        except BotoCoreError as exc:
            retryable = is_retryable(exc)
            raise ConfigError(
                f"failed to create EC2 client: {error_message(exc)} (retryable {retryable})",
                retryable=retryable,
            ) from exc
        return cls(
            cfg,
            resolver=resolver,
            store=FileRecordStore(logger=logger),
            allocator=AddressAllocator(ec2, logger=logger),
            reconciler=AssociationReconciler(ec2, logger=logger),
            logger=logger,
        )

    def wait(self) -> float:
        seconds = jitter_seconds(self.cfg.max_jitter, self.rng)
        if self.cfg.max_jitter <= 0:
            self.log.info("skipping random sleep...")
            return 0.0
        self.log.info("waiting for random seconds %.2f (max %d)", seconds, self.cfg.max_jitter)
        self.sleep(seconds)
        return seconds

    def _recover_or_allocate(self) -> RecordResolution:
        cfg = self.cfg
        if cfg.recover_from_tags:
            matches = self.allocator.find_by_tags(cfg.id_tag, cfg.kind_tag)
            if len(matches) == 1:
                self.log.info("recovered existing elastic IP %s via tags", matches[0].allocation_id)
                return RecordResolution(matches[0], RecordSource.RECOVERED)
            if len(matches) > 1:
                ids = ", ".join(m.allocation_id for m in matches)
                raise AllocationFailed(
                    f"{len(matches)} addresses tagged {cfg.id_tag}, {cfg.kind_tag} ({ids}); "
                    "refusing to pick one",
                    retryable=False,
                )
        record = self.allocator.allocate(cfg.id_tag, cfg.kind_tag)
        return RecordResolution(record, RecordSource.ALLOCATED)

    def resolve_record(self) -> RecordResolution:
        """Load the local record, or obtain a new one when none exists."""
        path = self.cfg.record_path
        if self.store.exists(path):
            self.log.info("mounted EIP file path exists -- loading existing %s", path)
            return RecordResolution(self.store.load(path), RecordSource.LOADED)
        self.log.info("mounted EIP file %s does not exist -- creating one!", path)
        return self._recover_or_allocate()

    def run(self) -> RunReport:
        """Execute one run; raises :class:`ProvisionerError` on any fatal step."""
        instance_id = self.resolver.resolve()
        slept = self.wait()

        self.log.info(
            "checking if the local instance %s has an already created elastic IP (for reuse) via %s",
            instance_id, self.cfg.record_path,
        )
        resolution = self.resolve_record()
        self.store.persist(resolution.record, self.cfg.record_path)

        outcome = self.reconciler.reconcile(resolution.record, instance_id)
        self.log.info("successfully provisioned and associated EIP!")
        return RunReport(
            instance_id=instance_id,
            record=resolution.record,
            source=resolution.source,
            outcome=outcome,
            slept_seconds=slept,
        )
