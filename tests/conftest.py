"""Shared pytest fixtures for mirrorbot tests."""

from __future__ import annotations

import pytest
from fakes import FakeMirror, FakeUpstream

from mirrorbot.storage.artifacts import ArtifactStore


@pytest.fixture
def fake_mirror() -> FakeMirror:
    return FakeMirror()


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def artifacts(tmp_path) -> ArtifactStore:
    return ArtifactStore(tmp_path / "pr")
