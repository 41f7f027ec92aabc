from datetime import datetime, timedelta, timezone

import pytest

from venue_backoffice.database.models import ProvisioningStatus, UserRole
from venue_backoffice.schemas.profile import ProfileResponse
from venue_backoffice.schemas.staff import BartenderCreate, StaffCreate
from venue_backoffice.services.errors import (
    CompensationFailed,
    IdentityCreationFailed,
    IdentityDeletionFailed,
    IdentityUpdateFailed,
    NotAuthorized,
    ProfileNotFound,
    ProfileWriteFailed,
    VenueWriteFailed,
)
from venue_backoffice.services.provisioning import (
    assign_manager,
    create_bartender,
    create_staff,
    delete_staff,
    disable_staff,
    reconcile_provisioning,
)

ADMIN = ProfileResponse(id="admin-1", role=UserRole.ADMIN)


def staff_payload(**overrides):
    data = {"email": "a@b.com", "password": "secret1", "role": "bartender", "venueId": "V1"}
    data.update(overrides)
    return StaffCreate.model_validate(data)


def journal(backend):
    return backend.rows("staff_provisioning")


class TestCreateStaff:
    def test_creates_account_and_profile(self, backend):
        staff = create_staff(backend, staff_payload(fullName="Ana"), ADMIN)

        profile = backend.profile(staff.account_id)
        assert profile["role"] == "bartender"
        assert profile["venue_id"] == "V1"
        assert profile["full_name"] == "Ana"
        assert backend.find_account_id("a@b.com") == staff.account_id
        assert journal(backend)[0]["status"] == ProvisioningStatus.COMPLETED.value
        assert journal(backend)[0]["account_id"] == staff.account_id

    def test_profile_written_without_signup_trigger(self):
        from conftest import InMemoryBackend
        backend = InMemoryBackend(profile_trigger=False)

        staff = create_staff(backend, staff_payload(role="manager"), ADMIN)

        assert backend.profile(staff.account_id)["role"] == "manager"

    def test_requires_admin(self, backend):
        manager = ProfileResponse(id="m1", role=UserRole.MANAGER, venue_id="V1")

        with pytest.raises(NotAuthorized):
            create_staff(backend, staff_payload(), manager)
        assert backend.calls_to("create_account") == []

    def test_identity_failure_writes_no_profile(self, backend):
        backend.fail("create_account", message="User already registered")

        with pytest.raises(IdentityCreationFailed) as exc_info:
            create_staff(backend, staff_payload(), ADMIN)

        assert exc_info.value.message == "Auth Error: User already registered"
        assert exc_info.value.status_code == 400
        assert backend.calls_to("upsert", "profiles") == []
        assert backend.calls_to("update", "profiles") == []
        assert journal(backend)[0]["status"] == ProvisioningStatus.FAILED.value

    def test_profile_failure_deletes_account_once(self, backend):
        backend.fail("upsert", "profiles", "DB_ERROR")

        with pytest.raises(ProfileWriteFailed) as exc_info:
            create_staff(backend, staff_payload(), ADMIN)

        assert "DB_ERROR" in exc_info.value.message
        assert exc_info.value.compensated is True
        assert len(backend.calls_to("delete_account")) == 1
        assert backend.find_account_id("a@b.com", record=False) is None
        assert backend.rows("profiles") == []
        assert journal(backend)[0]["status"] == ProvisioningStatus.COMPENSATED.value

    def test_failed_compensation_keeps_profile_error(self, backend):
        backend.fail("upsert", "profiles", "DB_ERROR")
        backend.fail("delete_account", message="gotrue unavailable")

        with pytest.raises(CompensationFailed) as exc_info:
            create_staff(backend, staff_payload(), ADMIN)

        assert exc_info.value.message == "Profile Update Error: DB_ERROR"
        assert exc_info.value.compensation_error == "gotrue unavailable"
        assert len(backend.calls_to("delete_account")) == 1
        assert journal(backend)[0]["status"] == ProvisioningStatus.COMPENSATION_FAILED.value
        assert journal(backend)[0]["account_id"] is not None


class TestCreateBartender:
    def test_manager_creates_bartender_at_own_venue(self, backend):
        manager = ProfileResponse(id="m1", role=UserRole.MANAGER, venue_id="V1")
        payload = BartenderCreate.model_validate({"email": "b@b.com", "password": "secret1", "venue_id": "V1"})

        staff = create_bartender(backend, payload, manager)

        assert staff.role == UserRole.BARTENDER
        assert backend.profile(staff.account_id)["venue_id"] == "V1"

    def test_other_venue_rejected_before_any_call(self, backend):
        manager = ProfileResponse(id="m1", role=UserRole.MANAGER, venue_id="V2")
        payload = BartenderCreate.model_validate({"email": "b@b.com", "password": "secret1", "venue_id": "V1"})

        with pytest.raises(NotAuthorized):
            create_bartender(backend, payload, manager)
        assert backend.calls == []

    def test_admin_cannot_use_manager_entry_point(self, backend):
        payload = BartenderCreate.model_validate({"email": "b@b.com", "password": "secret1", "venue_id": "V1"})

        with pytest.raises(NotAuthorized):
            create_bartender(backend, payload, ADMIN)


class TestAssignManager:
    def test_missing_profile_writes_nothing(self, backend, venue):
        with pytest.raises(ProfileNotFound) as exc_info:
            assign_manager(backend, venue["id"], "U404")

        assert exc_info.value.message == "Manager user profile not found (ID: U404)."
        assert backend.calls_to("update", "profiles") == []
        assert backend.calls_to("update", "venues") == []

    def test_updates_profile_then_venue(self, backend, venue):
        user_id = backend.add_user("new@example.com", "bartender")

        assign_manager(backend, venue["id"], user_id)

        profile = backend.profile(user_id)
        assert profile["role"] == "manager"
        assert profile["venue_id"] == venue["id"]
        assert backend.rows("venues")[0]["manager_id"] == user_id
        updates = [call for call in backend.calls if call[0] == "update"]
        assert updates == [("update", "profiles"), ("update", "venues")]

    def test_venue_failure_leaves_profile_changed(self, backend, venue):
        user_id = backend.add_user("new@example.com", "bartender")
        backend.fail("update", "venues", "permission denied")

        with pytest.raises(VenueWriteFailed, match="permission denied"):
            assign_manager(backend, venue["id"], user_id)

        assert backend.profile(user_id)["role"] == "manager"
        assert backend.rows("venues")[0]["manager_id"] is None

    def test_profile_failure_leaves_venue_untouched(self, backend, venue):
        user_id = backend.add_user("new@example.com", "bartender")
        backend.fail("update", "profiles", "DB_ERROR")

        with pytest.raises(ProfileWriteFailed, match="Failed to update manager profile: DB_ERROR"):
            assign_manager(backend, venue["id"], user_id)

        assert backend.calls_to("update", "venues") == []


class TestDeleteAndDisable:
    def test_delete_removes_account_and_profile(self, backend, bartender_id):
        delete_staff(backend, bartender_id)

        assert bartender_id not in backend.accounts
        assert backend.profile(bartender_id) is None

    def test_delete_unknown_account(self, backend):
        with pytest.raises(IdentityDeletionFailed, match="Delete Error: User not found"):
            delete_staff(backend, "missing")

    def test_manager_disables_own_bartender(self, backend, manager_id, bartender_id):
        manager = ProfileResponse.from_row(backend.profile(manager_id))

        disable_staff(backend, bartender_id, manager)

        assert backend.accounts[bartender_id]["banned"] is True

    def test_bartender_at_other_venue(self, backend, manager_id):
        other = backend.add_venue("Elsewhere")
        stranger = backend.add_user("x@example.com", "bartender", venue_id=other["id"])
        manager = ProfileResponse.from_row(backend.profile(manager_id))

        with pytest.raises(NotAuthorized, match="your venue"):
            disable_staff(backend, stranger, manager)
        assert backend.accounts[stranger]["banned"] is False

    def test_cannot_disable_a_manager(self, backend, venue, manager_id):
        peer = backend.add_user("peer@example.com", "manager", venue_id=venue["id"])
        manager = ProfileResponse.from_row(backend.profile(manager_id))

        with pytest.raises(NotAuthorized, match="only disable bartenders"):
            disable_staff(backend, peer, manager)

    def test_missing_target(self, backend, manager_id):
        manager = ProfileResponse.from_row(backend.profile(manager_id))

        with pytest.raises(ProfileNotFound):
            disable_staff(backend, "missing", manager)

    def test_identity_failure(self, backend, manager_id, bartender_id):
        backend.fail("set_account_disabled", message="gotrue down")
        manager = ProfileResponse.from_row(backend.profile(manager_id))

        with pytest.raises(IdentityUpdateFailed, match="gotrue down"):
            disable_staff(backend, bartender_id, manager)


class TestReconcile:
    NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def record(self, backend, account_id=None, status="pending", minutes_ago=30, email="a@b.com"):
        row = {
            "id": f"rec-{len(journal(backend))}",
            "email": email,
            "role": "bartender",
            "venue_id": "V1",
            "account_id": account_id,
            "status": status,
            "error": None,
            "created_at": (self.NOW - timedelta(minutes=minutes_ago)).isoformat(),
        }
        journal(backend).append(row)
        return row

    def reconcile(self, backend):
        return reconcile_provisioning(backend, timedelta(minutes=15), now=self.NOW)

    def test_orphaned_account_is_deleted(self, backend):
        account_id = backend.create_account("a@b.com", "secret1")
        row = self.record(backend, account_id=account_id)

        summary = self.reconcile(backend)

        assert summary["compensated"] == 1
        assert account_id not in backend.accounts
        assert row["status"] == "compensated"

    def test_finished_profile_marks_completed(self, backend):
        account_id = backend.add_user("a@b.com", "bartender", venue_id="V1")
        row = self.record(backend, account_id=account_id)

        summary = self.reconcile(backend)

        assert summary["completed"] == 1
        assert account_id in backend.accounts
        assert row["status"] == "completed"

    def test_unattached_account_is_never_deleted(self, backend):
        account_id = backend.add_user("a@b.com", "manager", venue_id="V9")
        row = self.record(backend)

        summary = self.reconcile(backend)

        assert summary["failed"] == 1
        assert account_id in backend.accounts
        assert backend.calls_to("delete_account") == []
        assert row["status"] == "failed"

    def test_unattached_with_matching_profile(self, backend):
        account_id = backend.add_user("a@b.com", "bartender", venue_id="V1")
        row = self.record(backend)

        self.reconcile(backend)

        assert row["status"] == "completed"
        assert row["account_id"] == account_id

    def test_recent_records_are_left_alone(self, backend):
        account_id = backend.create_account("a@b.com", "secret1")
        row = self.record(backend, account_id=account_id, minutes_ago=1)

        summary = self.reconcile(backend)

        assert sum(summary.values()) == 0
        assert row["status"] == "pending"

    def test_failed_cleanup_is_retried_later(self, backend):
        account_id = backend.create_account("a@b.com", "secret1")
        row = self.record(backend, account_id=account_id, status="compensation_failed")
        backend.fail("delete_account", message="still down")

        assert self.reconcile(backend)["compensation_failed"] == 1
        assert row["status"] == "compensation_failed"

        del backend.failures[("delete_account", None)]
        assert self.reconcile(backend)["compensated"] == 1
        assert account_id not in backend.accounts


class TestJournalAndReconcileEdges:
    NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def test_journal_attach_failure_is_named_and_compensated(self, backend):
        backend.fail("update", "staff_provisioning", "journal down")

        with pytest.raises(ProfileWriteFailed) as exc_info:
            create_staff(backend, staff_payload(), ADMIN)

        assert exc_info.value.message == "Provisioning Journal Error: journal down"
        assert backend.calls_to("upsert", "profiles") == []
        assert len(backend.calls_to("delete_account")) == 1
        assert backend.find_account_id("a@b.com", record=False) is None

    def test_account_already_removed_settles_once(self, backend):
        row = {
            "id": "rec-gone",
            "email": "a@b.com",
            "role": "bartender",
            "venue_id": "V1",
            "account_id": "gone-account",
            "status": "pending",
            "error": None,
            "created_at": (self.NOW - timedelta(hours=1)).isoformat(),
        }
        journal(backend).append(row)

        first = reconcile_provisioning(backend, timedelta(minutes=15), now=self.NOW)
        second = reconcile_provisioning(backend, timedelta(minutes=15), now=self.NOW)

        assert first["compensated"] == 1
        assert sum(second.values()) == 0
        assert row["status"] == "compensated"
        assert backend.calls_to("delete_account") == []
