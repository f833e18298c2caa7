"""
Tests for the warehouse location wizard locks.

Tree used throughout:

    B1 (building)
    └── Z1 (zone)
        ├── R1 (rack)
        │   └── S1 (shelf)
        └── R2 (rack)
"""

import pytest

from ops_kernel.exceptions import LocationLockedError, LocationNotFoundError, ValidationError
from ops_modules.warehouse import LocationType, WarehouseLocation


@pytest.fixture
def tree(lock_service):
    b1 = lock_service.create_location("Main building", "B1", "building")
    z1 = lock_service.create_location("Zone 1", "Z1", "zone", parent_id=b1.id)
    r1 = lock_service.create_location("Rack 1", "R1", "rack", parent_id=z1.id)
    s1 = lock_service.create_location("Shelf 1", "S1", "shelf", parent_id=r1.id)
    r2 = lock_service.create_location("Rack 2", "R2", "rack", parent_id=z1.id)
    return {loc.code: loc for loc in (b1, z1, r1, s1, r2)}


class TestLocationTree:

    def test_create_returns_unlocked_dto(self, tree):
        z1 = tree["Z1"]
        assert isinstance(z1, WarehouseLocation)
        assert z1.type == LocationType.ZONE.value
        assert z1.parent_id == tree["B1"].id
        assert z1.is_locked is False

    def test_duplicate_code(self, lock_service, tree):
        with pytest.raises(ValidationError) as exc_info:
            lock_service.create_location("Another rack", "R1", "rack")
        assert exc_info.value.field == "code"

    def test_unknown_type(self, lock_service):
        with pytest.raises(ValidationError):
            lock_service.create_location("Pallet", "P1", "pallet")

    def test_blank_name(self, lock_service):
        with pytest.raises(ValidationError):
            lock_service.create_location("  ", "P1", "bin")

    def test_unknown_parent(self, lock_service):
        with pytest.raises(LocationNotFoundError):
            lock_service.create_location("Orphan", "O1", "bin", parent_id=999)

    def test_get_unknown(self, lock_service):
        with pytest.raises(LocationNotFoundError):
            lock_service.get_location(42)


class TestLeafLocations:

    def test_leaves_of_building(self, lock_service, tree):
        leaves = lock_service.leaf_locations([tree["B1"].id])
        assert [leaf.code for leaf in leaves] == ["R2", "S1"]

    def test_shared_leaves_appear_once(self, lock_service, tree):
        leaves = lock_service.leaf_locations([tree["B1"].id, tree["Z1"].id, tree["R1"].id])
        codes = [leaf.code for leaf in leaves]
        assert sorted(codes) == ["R2", "S1"]
        assert len(codes) == len(set(codes))

    def test_leaf_returns_itself(self, lock_service, tree):
        assert [leaf.code for leaf in lock_service.leaf_locations([tree["S1"].id])] == ["S1"]

    def test_unknown_ids_are_skipped(self, lock_service, tree):
        leaves = lock_service.leaf_locations([999, tree["R2"].id])
        assert [leaf.code for leaf in leaves] == ["R2"]

    def test_empty_request(self, lock_service):
        assert lock_service.leaf_locations([]) == []


class TestLock:

    def test_lock_and_read_back(self, lock_service, tree):
        locked = lock_service.lock([tree["R1"].id, tree["R2"].id], "ana", "sess-a")
        assert all(loc.is_locked and loc.locked_by == "ana" for loc in locked)
        assert lock_service.get_location(tree["R1"].id).locked_by_session_id == "sess-a"

    def test_conflict_is_all_or_nothing(self, lock_service, tree):
        lock_service.lock([tree["R1"].id], "ana", "sess-a")
        with pytest.raises(LocationLockedError) as exc_info:
            lock_service.lock([tree["R2"].id, tree["R1"].id], "bruno", "sess-b")
        assert exc_info.value.conflicts == [(tree["R1"].id, "ana")]
        assert lock_service.get_location(tree["R2"].id).is_locked is False

    def test_same_session_cannot_relock(self, lock_service, tree):
        lock_service.lock([tree["R1"].id], "ana", "sess-a")
        with pytest.raises(LocationLockedError):
            lock_service.lock([tree["R1"].id], "ana", "sess-a")

    def test_conflict_is_logged(self, lock_service, tree, captured_logs):
        lock_service.lock([tree["R1"].id], "ana", "sess-a")
        with pytest.raises(LocationLockedError):
            lock_service.lock([tree["R1"].id], "bruno", "sess-b")
        conflict = [r for r in captured_logs() if r["message"] == "location_lock_conflict"]
        assert conflict and conflict[0]["level"] == "WARNING"
        assert conflict[0]["user_name"] == "bruno"

    def test_unknown_id(self, lock_service, tree):
        with pytest.raises(LocationNotFoundError) as exc_info:
            lock_service.lock([tree["R1"].id, 999], "ana", "sess-a")
        assert exc_info.value.location_ids == [999]
        assert lock_service.get_location(tree["R1"].id).is_locked is False

    def test_empty_list(self, lock_service):
        with pytest.raises(ValidationError):
            lock_service.lock([], "ana", "sess-a")

    def test_session_id_required(self, lock_service, tree):
        with pytest.raises(ValidationError):
            lock_service.lock([tree["R1"].id], "ana", "")


class TestRelease:

    def test_only_owner_releases(self, lock_service, tree):
        r1 = tree["R1"].id
        lock_service.lock([r1], "ana", "sess-a")
        assert lock_service.release([r1], "sess-b") == 0
        assert lock_service.get_location(r1).is_locked is True
        assert lock_service.release([r1], "sess-a") == 1
        released = lock_service.get_location(r1)
        assert (released.is_locked, released.locked_by, released.locked_by_session_id) == (False, None, None)

    def test_release_then_other_session_locks(self, lock_service, tree):
        r1 = tree["R1"].id
        lock_service.lock([r1], "ana", "sess-a")
        lock_service.release([r1], "sess-a")
        assert lock_service.lock([r1], "bruno", "sess-b")[0].locked_by == "bruno"

    def test_release_nothing(self, lock_service):
        assert lock_service.release([], "sess-a") == 0

    def test_force_release(self, lock_service, tree, captured_logs):
        r1 = tree["R1"].id
        lock_service.lock([r1], "ana", "sess-a")
        freed = lock_service.force_release(r1, actor="admin")
        assert freed.is_locked is False

        records = [r for r in captured_logs() if r["message"] == "location_lock_force_released"]
        assert records[0]["level"] == "WARNING"
        assert records[0]["previous_holder"] == "ana"
        assert records[0]["released_by"] == "admin"

    def test_force_release_unknown(self, lock_service):
        with pytest.raises(LocationNotFoundError):
            lock_service.force_release(999, actor="admin")

    def test_active_locks(self, lock_service, tree):
        lock_service.lock([tree["R2"].id], "bruno", "sess-b")
        lock_service.lock([tree["S1"].id], "ana", "sess-a")
        active = lock_service.active_locks()
        assert [loc.code for loc in active] == ["S1", "R2"]
        lock_service.release([tree["S1"].id], "sess-a")
        assert [loc.code for loc in lock_service.active_locks()] == ["R2"]
