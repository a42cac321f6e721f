"""
Shared fixtures: an in-memory store with a controllable clock, a notifier
that records messages, and a small seeded registry.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.access.notifications import Notifier
from core.access.workflow import (
    AccessRequestWorkflow,
    CONDOS_COLLECTION,
    DRIVERS_COLLECTION,
    RESIDENTS_COLLECTION,
)
from core.store.memory import InMemoryDocumentStore


START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value


class RecordingNotifier(Notifier):
    """Notifier that keeps every message; optionally fails for some targets."""

    def __init__(self, fail_for: tuple[str, ...] = ()):
        self.sent: list[dict] = []
        self.fail_for = set(fail_for)

    async def notify(self, target_actor_id, title, body, data) -> bool:
        if target_actor_id in self.fail_for:
            raise RuntimeError(f"push failed for {target_actor_id}")
        self.sent.append({"target": target_actor_id, "title": title, "body": body, "data": data})
        return True

    def targets(self) -> list[str]:
        return [m["target"] for m in self.sent]


CONDOS = {
    "C1": {
        "name": "Residencial Jardim Real",
        "address": "Rua Augusta, 1200 - Consolacao, Sao Paulo - SP",
        "place_id": "ChIJ_place-jardim-real-0001",
        "latitude": -23.5537,
        "longitude": -46.6552,
        "status": "active",
    },
    "C2": {
        "name": "Condominio Jardim Real II",
        "address": "Av. Reboucas, 3000 - Pinheiros, Sao Paulo - SP",
        "place_id": None,
        "latitude": -23.5665,
        "longitude": -46.7020,
        "status": "active",
    },
    "C3": {
        "name": "Edificio Solar das Flores",
        "address": "Rua das Flores, 55 - Centro, Campinas - SP",
        "place_id": "ChIJ_place-solar-flores-0003",
        "latitude": -22.9056,
        "longitude": -47.0608,
        "status": "inactive",
    },
}

RESIDENTS = {
    "R1": {"name": "Ana Souza", "condo_id": "C1", "unit": "101", "block": "A"},
    "R2": {"name": "Bruno Lima", "condo_id": "C2", "unit": "32", "block": None},
}

DRIVERS = {
    "D1": {"name": "Carlos Pereira", "vehicle_plate": "ABC1D23", "vehicle_model": "Onix"},
    "D2": {"name": "Daniela Rocha", "vehicle_plate": "XYZ9K87", "vehicle_model": "HB20"},
    "D3": {"name": "Eduardo Alves", "vehicle_plate": "JKL4M56", "vehicle_model": "Gol"},
    "D4": {"name": "Fernanda Dias", "vehicle_plate": "QWE2R34", "vehicle_model": "Kwid"},
    "D5": {"name": "Gustavo Reis", "vehicle_plate": "MNB7V65", "vehicle_model": "Argo"},
}


async def seed(store: InMemoryDocumentStore) -> None:
    for collection, records in (
        (CONDOS_COLLECTION, CONDOS),
        (RESIDENTS_COLLECTION, RESIDENTS),
        (DRIVERS_COLLECTION, DRIVERS),
    ):
        for record_id, data in records.items():
            await store.create_with_id(collection, record_id, data)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    """Seeded in-memory store."""
    store = InMemoryDocumentStore(clock=clock)
    asyncio.run(seed(store))
    return store


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def workflow(store, notifier):
    return AccessRequestWorkflow(store, notifier)


@pytest.fixture
def failing_notifier():
    """Notifier whose deliveries to the C1 gatehouse always fail."""
    return RecordingNotifier(fail_for=("C1",))
