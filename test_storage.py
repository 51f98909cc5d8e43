#!/usr/bin/env python3
"""
Test script for verifying snapshot persistence
"""

import json

import pytest

from conftest import commit_payload
from contriblens.errors import DataNotFoundError
from contriblens.models import Commit, DeveloperSnapshot, RepositoryContribution
from contriblens.storage import SNAPSHOT_FILENAME, SnapshotStore


def make_snapshot(developer="jdoe"):
    return DeveloperSnapshot(
        developer=developer,
        organization="acme",
        collected_at="2025-02-01T12:00:00+00:00",
        repositories={
            "widgets": RepositoryContribution(commits=[Commit.from_api(commit_payload("a1", "2025-01-05T10:00:00Z"))]),
        },
    )


def test_save_writes_developer_file(tmp_path):
    store = SnapshotStore(tmp_path)
    path = store.save(make_snapshot())

    assert path == tmp_path / "jdoe" / SNAPSHOT_FILENAME
    data = json.loads(path.read_text(encoding="utf-8"))
    assert list(data) == ["developer", "organization", "collected_at", "repositories", "summary"]
    assert data["summary"]["total_commits"] == 1
    assert not (tmp_path / "jdoe" / "contributions.json.tmp").exists()


def test_save_overwrites_previous_snapshot(tmp_path):
    store = SnapshotStore(tmp_path)
    store.save(make_snapshot())
    empty = DeveloperSnapshot("jdoe", "acme", "2025-03-01T00:00:00+00:00")
    store.save(empty)

    assert store.load("jdoe").repositories == {}


def test_load_round_trip(tmp_path):
    store = SnapshotStore(tmp_path)
    snapshot = make_snapshot()
    store.save(snapshot)

    loaded = store.load("jdoe")
    assert loaded.to_dict() == snapshot.to_dict()


def test_load_missing_developer(tmp_path):
    with pytest.raises(DataNotFoundError) as excinfo:
        SnapshotStore(tmp_path).load("ghost")
    assert excinfo.value.username == "ghost"
    assert "contriblens collect ghost" in str(excinfo.value)


def test_available_users(tmp_path):
    store = SnapshotStore(tmp_path / "data")
    assert store.available_users() == []

    store.save(make_snapshot("zoe"))
    store.save(make_snapshot("adam"))
    store.ensure_developer_directory("pending")

    assert store.available_users() == ["adam", "zoe"]
    assert store.exists("adam")
    assert not store.exists("pending")
