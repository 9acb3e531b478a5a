from __future__ import annotations

import copy
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from seed_fixtures import SEED_ANIMALS, SEED_ZOOKEEPERS, write_collection
from zookeepr.database import JsonCollectionStore
from zookeepr.main import app, get_animal_store, get_zookeeper_store


@pytest.fixture
def animals_path(tmp_path: Path) -> Path:
    return write_collection(tmp_path / "animals.json", "animals", copy.deepcopy(SEED_ANIMALS))


@pytest.fixture
def zookeepers_path(tmp_path: Path) -> Path:
    return write_collection(tmp_path / "zookeepers.json", "zookeepers", copy.deepcopy(SEED_ZOOKEEPERS))


@pytest.fixture
def animal_store(animals_path: Path) -> JsonCollectionStore:
    return JsonCollectionStore.load(animals_path, "animals")


@pytest.fixture
def zookeeper_store(zookeepers_path: Path) -> JsonCollectionStore:
    return JsonCollectionStore.load(zookeepers_path, "zookeepers")


@pytest.fixture
def client(
    animal_store: JsonCollectionStore, zookeeper_store: JsonCollectionStore
) -> Generator[TestClient, None, None]:
    """A client whose stores point at temporary copies of the seed data."""

    app.dependency_overrides[get_animal_store] = lambda: animal_store
    app.dependency_overrides[get_zookeeper_store] = lambda: zookeeper_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
