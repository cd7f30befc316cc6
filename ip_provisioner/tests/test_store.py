"""YAML record store against a real temp directory."""

from __future__ import annotations

import os

import pytest
import yaml

from ip_provisioner.errors import PersistFailed, RecordCorrupt
from ip_provisioner.models import AddressRecord
from ip_provisioner.store import FileRecordStore, MemoryRecordStore

RECORD = AddressRecord(
    "eipalloc-0123456789abcdef0",
    "203.0.113.10",
    {"Id": "TEST-ID", "Kind": "aws-ip-provisioner"},
)


def test_persist_then_load(tmp_path):
    path = str(tmp_path / "eip.yaml")
    store = FileRecordStore()

    assert not store.exists(path)
    store.persist(RECORD, path)

    assert store.exists(path)
    loaded = store.load(path)
    assert loaded == RECORD
    assert loaded.tags == RECORD.tags


def test_file_layout_is_plain_yaml(tmp_path):
    path = tmp_path / "eip.yaml"
    FileRecordStore().persist(RECORD, str(path))

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data == {
        "allocation_id": "eipalloc-0123456789abcdef0",
        "public_ip": "203.0.113.10",
        "tags": {"Id": "TEST-ID", "Kind": "aws-ip-provisioner"},
    }


def test_persist_overwrites_and_leaves_no_temp_files(tmp_path):
    path = str(tmp_path / "eip.yaml")
    store = FileRecordStore()
    store.persist(AddressRecord("eipalloc-old", "192.0.2.1"), path)
    store.persist(RECORD, path)

    assert store.load(path).allocation_id == RECORD.allocation_id
    assert os.listdir(tmp_path) == ["eip.yaml"]


def test_persist_creates_parent_directory(tmp_path):
    path = str(tmp_path / "data" / "nested" / "eip.yaml")
    FileRecordStore().persist(RECORD, path)
    assert os.path.isfile(path)


def test_load_minimal_record_written_by_older_versions(tmp_path):
    path = tmp_path / "eip.yaml"
    path.write_text("allocation_id: eipalloc-abc\npublic_ip: 192.0.2.5\n", encoding="utf-8")

    loaded = FileRecordStore().load(str(path))

    assert loaded.allocation_id == "eipalloc-abc"
    assert loaded.public_ip == "192.0.2.5"
    assert loaded.tags == {}


@pytest.mark.parametrize(
    "content",
    [
        "",
        "allocation_id: [unterminated\n",
        "- just\n- a list\n",
        "public_ip: 192.0.2.5\n",
        "allocation_id: ''\n",
        "allocation_id: 12345\n",
        "allocation_id: eipalloc-abc\ntags: nope\n",
    ],
)
def test_load_corrupt_content_raises(tmp_path, content):
    path = tmp_path / "eip.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(RecordCorrupt) as err:
        FileRecordStore().load(str(path))

    assert err.value.path == str(path)


def test_persist_io_error_raises(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(PersistFailed):
        FileRecordStore().persist(RECORD, str(blocker / "eip.yaml"))


def test_memory_store_contract():
    store = MemoryRecordStore({"/bad": {"nope": 1}})

    assert not store.exists("/data/eip.yaml")
    store.persist(RECORD, "/data/eip.yaml")
    assert store.exists("/data/eip.yaml")
    assert store.load("/data/eip.yaml") == RECORD
    assert store.persist_calls == 1
    with pytest.raises(RecordCorrupt):
        store.load("/bad")


def test_directory_at_path_counts_as_present_and_corrupt(tmp_path):
    path = tmp_path / "eip.yaml"
    path.mkdir()
    store = FileRecordStore()

    assert store.exists(str(path))
    with pytest.raises(RecordCorrupt):
        store.load(str(path))
