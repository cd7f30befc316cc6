from __future__ import annotations

from typing import List

import pytest

from ip_provisioner.allocator import AddressAllocator
from ip_provisioner.config import ProvisionerConfig
from ip_provisioner.models import Tag
from ip_provisioner.orchestrator import Orchestrator
from ip_provisioner.reconciler import AssociationReconciler
from ip_provisioner.store import MemoryRecordStore

from fakes import RECORD_PATH, FakeEC2, FakeRandom, StaticResolver


@pytest.fixture(name="cfg")
def fixture_cfg() -> ProvisionerConfig:
    return ProvisionerConfig(
        id_tag=Tag("Id", "TEST-ID"),
        kind_tag=Tag("Kind", "aws-ip-provisioner"),
        max_jitter=0,
        record_path=RECORD_PATH,
    )


@pytest.fixture(name="ec2")
def fixture_ec2() -> FakeEC2:
    return FakeEC2()


@pytest.fixture(name="store")
def fixture_store() -> MemoryRecordStore:
    return MemoryRecordStore()


@pytest.fixture(name="sleeps")
def fixture_sleeps() -> List[float]:
    return []


@pytest.fixture(name="make_orchestrator")
def fixture_make_orchestrator(cfg, ec2, store, sleeps):
    """Factory building an orchestrator over the in-memory fakes."""

    def _make(config: ProvisionerConfig = cfg, resolver=None, rng=None) -> Orchestrator:
        return Orchestrator(
            config,
            resolver=resolver or StaticResolver(),
            store=store,
            allocator=AddressAllocator(ec2),
            reconciler=AssociationReconciler(ec2),
            sleep=sleeps.append,
            rng=rng or FakeRandom(),
        )

    return _make


@pytest.fixture(autouse=True)
def fixture_fake_aws_credentials(monkeypatch) -> None:
    """Keep boto3 (and moto) away from real credentials and regions."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
