"""
Tests for the Access Request Workflow

Tests covering:
1. Creation rules per role (required fields, condo and resident checks)
2. Driver snapshot and plate lookup
3. Status changes follow the graph; re-applying a status is a no-op
4. Role scoping of list_for
5. Notifications are best-effort
"""

from __future__ import annotations

import asyncio
import random

import pytest

from core.access.transitions import is_valid_walk
from core.access.workflow import (
    AccessRequestWorkflow,
    CONDOS_COLLECTION,
    NewAccessRequest,
    REQUESTS_COLLECTION,
)
from core.errors import InvalidRequest, InvalidTransition, NotFound, PermissionDenied, UnknownCondo
from core.models import AccessStatus, ActorRole, RequestType


def create(workflow, role=ActorRole.DRIVER, actor_id="D1", **fields):
    fields.setdefault("condo_id", "C1")
    return asyncio.run(workflow.create(NewAccessRequest(**fields), role, actor_id))


# =============================================================================
# Creation
# =============================================================================


class TestCreateAsDriver:

    def test_driver_request_to_unit_is_pending(self, workflow):
        request = create(workflow, unit="101", block="A", type=RequestType.DRIVER)

        assert request.status == AccessStatus.PENDING
        assert request.condo_id == "C1"
        assert request.resident_id == "R1"
        assert request.driver_id == "D1"
        assert request.unit == "101"
        assert request.block == "A"
        assert request.created_by == "D1"
        assert request.created_at is not None

    def test_driver_request_without_block_finds_unit_resident(self, workflow):
        request = create(workflow, unit="101")
        assert request.resident_id == "R1"

    def test_driver_request_to_other_block_has_no_resident(self, workflow):
        request = create(workflow, unit="101", block="B")
        assert request.resident_id is None

    def test_driver_request_to_empty_unit_has_no_resident(self, workflow):
        request = create(workflow, unit="999")
        assert request.resident_id is None

    def test_unit_resident_sees_and_is_notified(self, workflow, notifier):
        request = create(workflow, unit="101", block="A")

        listed = asyncio.run(workflow.list_for("R1", ActorRole.RESIDENT))

        assert [r.id for r in listed] == [request.id]
        assert notifier.targets() == ["R1", "C1"]

    def test_driver_snapshot_copied_from_driver_record(self, workflow):
        request = create(workflow, unit="101")
        assert request.driver_name == "Carlos Pereira"
        assert request.vehicle_plate == "ABC1D23"
        assert request.vehicle_model == "Onix"

    def test_block_is_optional(self, workflow):
        request = create(workflow, unit="12")
        assert request.block is None

    def test_unit_is_required(self, workflow):
        with pytest.raises(InvalidRequest):
            create(workflow, unit="  ")

    def test_request_is_persisted(self, workflow, store):
        request = create(workflow, unit="101")
        assert store.count(REQUESTS_COLLECTION) == 1
        assert asyncio.run(workflow.get(request.id)).unit == "101"


class TestCreateAsResident:

    def test_resident_defaults_to_actor(self, workflow):
        request = create(workflow, role=ActorRole.RESIDENT, actor_id="R1", driver_name="Joao")
        assert request.resident_id == "R1"
        assert request.status == AccessStatus.PENDING
        assert request.driver_name == "Joao"

    def test_resident_must_belong_to_condo(self, workflow):
        with pytest.raises(InvalidRequest):
            create(workflow, role=ActorRole.RESIDENT, actor_id="R2", condo_id="C1")

    def test_unknown_resident_rejected(self, workflow):
        with pytest.raises(InvalidRequest):
            create(workflow, role=ActorRole.RESIDENT, actor_id="R404")

    def test_delivery_type_is_kept(self, workflow):
        request = create(
            workflow, role=ActorRole.RESIDENT, actor_id="R1", type=RequestType.DELIVERY
        )
        assert request.type == RequestType.DELIVERY


class TestCreateRejections:

    def test_unknown_condo(self, workflow, store):
        with pytest.raises(UnknownCondo):
            create(workflow, condo_id="C404", unit="1")
        assert store.count(REQUESTS_COLLECTION) == 0

    def test_inactive_condo(self, workflow, store):
        with pytest.raises(UnknownCondo) as exc_info:
            create(workflow, condo_id="C3", unit="1")
        assert "not active" in str(exc_info.value)
        assert store.count(REQUESTS_COLLECTION) == 0

    def test_missing_condo_id(self, workflow):
        with pytest.raises(InvalidRequest):
            create(workflow, condo_id="", unit="1")

    def test_gatehouse_needs_resident_or_unit(self, workflow):
        with pytest.raises(InvalidRequest):
            create(workflow, role=ActorRole.CONDO, actor_id="C1")


class TestPlateLookup:

    def test_plate_resolves_driver(self, workflow):
        request = create(
            workflow, role=ActorRole.CONDO, actor_id="C1", unit="101", vehicle_plate=" xyz9k87 "
        )
        assert request.driver_id == "D2"
        assert request.vehicle_plate == "XYZ9K87"
        assert request.driver_name == "Daniela Rocha"

    def test_unknown_plate_keeps_typed_values(self, workflow):
        request = create(
            workflow,
            role=ActorRole.CONDO,
            actor_id="C1",
            unit="101",
            vehicle_plate="zzz0z00",
            driver_name="Visitor",
        )
        assert request.driver_id is None
        assert request.vehicle_plate == "ZZZ0Z00"
        assert request.driver_name == "Visitor"


# =============================================================================
# Status Changes
# =============================================================================


class TestUpdateStatus:

    def test_driver_request_authorized_then_cannot_skip_to_entered(self, workflow):
        request = create(workflow, unit="101", block="A")

        authorized = asyncio.run(
            workflow.update_status(request.id, AccessStatus.AUTHORIZED, "R1", ActorRole.RESIDENT)
        )
        assert authorized.status == AccessStatus.AUTHORIZED
        assert authorized.updated_by == "R1"

        with pytest.raises(InvalidTransition):
            asyncio.run(workflow.update_status(request.id, AccessStatus.ENTERED, "C1", ActorRole.CONDO))

        assert asyncio.run(workflow.get(request.id)).status == AccessStatus.AUTHORIZED

    def test_same_status_is_a_silent_no_op(self, workflow, notifier, clock):
        request = create(workflow, unit="101")
        asyncio.run(workflow.update_status(request.id, AccessStatus.AUTHORIZED, "C1", ActorRole.CONDO))
        before = asyncio.run(workflow.get(request.id))
        sent_before = len(notifier.sent)

        clock.advance(minutes=5)
        again = asyncio.run(
            workflow.update_status(request.id, AccessStatus.AUTHORIZED, "C1", ActorRole.CONDO)
        )

        assert again.status == AccessStatus.AUTHORIZED
        assert again.updated_at == before.updated_at
        assert len(notifier.sent) == sent_before

    def test_comments_are_appended(self, workflow):
        request = create(workflow, unit="101", comment="Blue car")
        updated = asyncio.run(workflow.update_status(
            request.id, AccessStatus.DENIED, "C1", ActorRole.CONDO, comment="Unknown driver"
        ))
        assert updated.comment == "Blue car\nUnknown driver"

    def test_unknown_request(self, workflow):
        with pytest.raises(NotFound):
            asyncio.run(workflow.update_status("nope", AccessStatus.AUTHORIZED, "C1", ActorRole.CONDO))

    def test_updated_at_moves_on_change(self, workflow, clock):
        request = create(workflow, unit="101")
        clock.advance(minutes=3)
        updated = asyncio.run(
            workflow.update_status(request.id, AccessStatus.AUTHORIZED, "C1", ActorRole.CONDO)
        )
        assert updated.updated_at > request.updated_at

    def test_random_updates_only_walk_the_graph(self, workflow):
        rng = random.Random(7)
        statuses = list(AccessStatus)

        for _ in range(20):
            request = create(workflow, unit="101")
            history = [request.status]
            for _ in range(12):
                target = rng.choice(statuses)
                try:
                    asyncio.run(
                        workflow.update_status(request.id, target, "admin", ActorRole.ADMIN)
                    )
                except InvalidTransition:
                    pass
                history.append(asyncio.run(workflow.get(request.id)).status)
            assert is_valid_walk(history), history


class TestStatusPermissions:

    def update(self, workflow, request_id, status, actor_id, role):
        return asyncio.run(workflow.update_status(request_id, status, actor_id, role))

    @pytest.mark.parametrize("target", [AccessStatus.AUTHORIZED, AccessStatus.DENIED])
    def test_driver_cannot_decide_own_request(self, workflow, target):
        request = create(workflow, unit="101", block="A")

        with pytest.raises(PermissionDenied):
            self.update(workflow, request.id, target, "D1", ActorRole.DRIVER)

        assert asyncio.run(workflow.get(request.id)).status == AccessStatus.PENDING

    def test_resident_cannot_record_arrival(self, workflow):
        request = create(workflow, unit="101", block="A")
        self.update(workflow, request.id, AccessStatus.AUTHORIZED, "R1", ActorRole.RESIDENT)

        with pytest.raises(PermissionDenied):
            self.update(workflow, request.id, AccessStatus.ARRIVED, "R1", ActorRole.RESIDENT)

    def test_other_resident_cannot_authorize(self, workflow):
        request = create(workflow, unit="101", block="A")
        with pytest.raises(PermissionDenied):
            self.update(workflow, request.id, AccessStatus.AUTHORIZED, "R2", ActorRole.RESIDENT)

    def test_other_gatehouse_cannot_deny(self, workflow):
        request = create(workflow, unit="101")
        with pytest.raises(PermissionDenied):
            self.update(workflow, request.id, AccessStatus.DENIED, "C2", ActorRole.CONDO)

    def test_gatehouse_walks_to_completed(self, workflow):
        request = create(workflow, unit="101")
        for status in (
            AccessStatus.AUTHORIZED,
            AccessStatus.ARRIVED,
            AccessStatus.ENTERED,
            AccessStatus.COMPLETED,
        ):
            updated = self.update(workflow, request.id, status, "C1", ActorRole.CONDO)
        assert updated.status == AccessStatus.COMPLETED

    def test_rejected_change_is_not_notified(self, workflow, notifier):
        request = create(workflow, unit="101")
        notifier.sent.clear()
        with pytest.raises(PermissionDenied):
            self.update(workflow, request.id, AccessStatus.AUTHORIZED, "D1", ActorRole.DRIVER)
        assert notifier.sent == []


# =============================================================================
# Role Scoping
# =============================================================================


class TestListFor:

    @pytest.fixture
    def populated(self, workflow, store):
        """100 random requests across 3 active condos and 5 drivers."""
        asyncio.run(store.create_with_id(CONDOS_COLLECTION, "C4", {"name": "Vila Nova", "status": "active"}))
        rng = random.Random(2026)
        created = []
        for _ in range(100):
            condo_id = rng.choice(["C1", "C2", "C4"])
            driver_id = rng.choice(["D1", "D2", "D3", "D4", "D5"])
            if condo_id == "C1" and rng.random() < 0.5:
                role, actor_id, fields = ActorRole.RESIDENT, "R1", {"driver_id": driver_id}
            elif condo_id == "C2" and rng.random() < 0.5:
                role, actor_id, fields = ActorRole.RESIDENT, "R2", {"driver_id": driver_id}
            else:
                role, actor_id, fields = ActorRole.DRIVER, driver_id, {"unit": str(rng.randint(1, 300))}
            created.append(create(workflow, role=role, actor_id=actor_id, condo_id=condo_id, **fields))
        return created

    @pytest.mark.parametrize("driver_id", ["D1", "D2", "D3", "D4", "D5"])
    def test_drivers_see_only_their_requests(self, workflow, populated, driver_id):
        listed = asyncio.run(workflow.list_for(driver_id, ActorRole.DRIVER))
        assert all(r.driver_id == driver_id for r in listed)
        assert len(listed) == sum(1 for r in populated if r.driver_id == driver_id)

    @pytest.mark.parametrize("condo_id", ["C1", "C2", "C4"])
    def test_condos_see_only_their_requests(self, workflow, populated, condo_id):
        listed = asyncio.run(workflow.list_for(condo_id, ActorRole.CONDO))
        assert all(r.condo_id == condo_id for r in listed)
        assert len(listed) == sum(1 for r in populated if r.condo_id == condo_id)

    @pytest.mark.parametrize("resident_id", ["R1", "R2"])
    def test_residents_see_only_their_requests(self, workflow, populated, resident_id):
        listed = asyncio.run(workflow.list_for(resident_id, ActorRole.RESIDENT))
        assert all(r.resident_id == resident_id for r in listed)
        assert len(listed) == sum(1 for r in populated if r.resident_id == resident_id)

    def test_admin_sees_everything(self, workflow, populated):
        listed = asyncio.run(workflow.list_for("admin", ActorRole.ADMIN))
        assert len(listed) == 100

    def test_status_filter(self, workflow, populated):
        first, second = populated[0], populated[1]
        asyncio.run(workflow.update_status(first.id, AccessStatus.AUTHORIZED, "admin", ActorRole.ADMIN))
        asyncio.run(workflow.update_status(second.id, AccessStatus.DENIED, "admin", ActorRole.ADMIN))

        authorized = asyncio.run(workflow.list_for("admin", ActorRole.ADMIN, AccessStatus.AUTHORIZED))
        assert [r.id for r in authorized] == [first.id]

        either = asyncio.run(workflow.list_for(
            "admin", ActorRole.ADMIN, [AccessStatus.AUTHORIZED, AccessStatus.DENIED]
        ))
        assert {r.id for r in either} == {first.id, second.id}

    def test_most_recent_first(self, workflow, clock):
        older = create(workflow, unit="1")
        clock.advance(minutes=1)
        newer = create(workflow, unit="2")
        listed = asyncio.run(workflow.list_for("D1", ActorRole.DRIVER))
        assert [r.id for r in listed] == [newer.id, older.id]

    def test_limit(self, workflow, populated):
        listed = asyncio.run(workflow.list_for("admin", ActorRole.ADMIN, limit=5))
        assert len(listed) == 5


# =============================================================================
# Details
# =============================================================================


class TestDetails:

    def test_details_join_related_records(self, workflow):
        request = create(workflow, role=ActorRole.RESIDENT, actor_id="R1", driver_id="D2")
        details = asyncio.run(workflow.get_details(request.id))

        assert details.resident["name"] == "Ana Souza"
        assert details.driver["name"] == "Daniela Rocha"
        assert details.condo["name"] == "Residencial Jardim Real"

        data = details.to_dict()
        assert data["id"] == request.id
        assert data["condo"]["id"] == "C1"

    def test_missing_related_record_is_empty(self, workflow):
        request = create(workflow, unit="12")
        details = asyncio.run(workflow.get_details(request.id))
        assert details.resident is None
        assert details.driver["id"] == "D1"

    def test_list_details_for(self, workflow):
        create(workflow, unit="101")
        details = asyncio.run(workflow.list_details_for("C1", ActorRole.CONDO))
        assert len(details) == 1
        assert details[0].condo["id"] == "C1"


# =============================================================================
# Notifications
# =============================================================================


class TestNotifications:

    def test_creation_notifies_gatehouse_not_creator(self, workflow, notifier):
        create(workflow, unit="12")
        assert notifier.targets() == ["C1"]

    def test_status_change_notifies_everyone_but_actor(self, workflow, notifier):
        request = create(workflow, role=ActorRole.RESIDENT, actor_id="R1", driver_id="D1")
        notifier.sent.clear()

        asyncio.run(workflow.update_status(request.id, AccessStatus.AUTHORIZED, "R1", ActorRole.RESIDENT))
        assert sorted(notifier.targets()) == ["C1", "D1"]
        assert all(m["data"]["status"] == "authorized" for m in notifier.sent)

    def test_failing_notifier_does_not_undo_the_change(self, store, failing_notifier):
        workflow = AccessRequestWorkflow(store, failing_notifier)
        request = create(workflow, unit="101")
        updated = asyncio.run(
            workflow.update_status(request.id, AccessStatus.AUTHORIZED, "R1", ActorRole.RESIDENT)
        )

        assert updated.status == AccessStatus.AUTHORIZED
        assert asyncio.run(workflow.get(request.id)).status == AccessStatus.AUTHORIZED
