"""Shared pytest fixtures."""

from pathlib import Path

import pytest

from fakes import FakeClock, FakeRiotClient
from player_cache import PlayerCache


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_path(tmp_path: Path) -> Path:
    return tmp_path / "player_cache.json"


@pytest.fixture
def cache(cache_path: Path, clock: FakeClock) -> PlayerCache:
    return PlayerCache(cache_path, clock=clock)


@pytest.fixture
def client() -> FakeRiotClient:
    return FakeRiotClient()
