"""
Privileged staff workflows.

Each workflow is a short sequential chain of calls against the identity
store and the profiles/venues tables. Provisioning is the only one with a
compensating step: a failed profile write deletes the account it just
created. Every attempt is journalled in ``staff_provisioning`` so that
``reconcile_provisioning`` can clean up accounts orphaned by a crash between
the two writes.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from venue_backoffice.database.models import ProvisioningStatus, TABLES, UserRole
from venue_backoffice.schemas.profile import ProfileResponse
from venue_backoffice.schemas.staff import BartenderCreate, StaffCreate
from venue_backoffice.services.access import ensure_admin, ensure_manager, ensure_venue_manager
from venue_backoffice.services.errors import (
    CompensationFailed,
    IdentityCreationFailed,
    IdentityDeletionFailed,
    IdentityUpdateFailed,
    NotAuthorized,
    ProfileNotFound,
    ProfileWriteFailed,
    TransportOrServerError,
    VenueWriteFailed,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class ProvisionedStaff:
    account_id: str
    email: str
    role: UserRole
    venue_id: str
    full_name: Optional[str] = None
    phone_number: Optional[str] = None

    def profile_fields(self) -> Dict[str, Any]:
        fields = {"role": self.role.value, "venue_id": self.venue_id}
        if self.full_name is not None:
            fields["full_name"] = self.full_name
        if self.phone_number is not None:
            fields["phone_number"] = self.phone_number
        return fields

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.account_id,
            "email": self.email,
            "role": self.role.value,
            "venue_id": self.venue_id,
            "full_name": self.full_name,
            "phone_number": self.phone_number,
        }


class ProvisioningJournal:
    """Durable record of provisioning attempts, one row per attempt."""

    def __init__(self, backend):
        self.backend = backend
        self.table = TABLES['PROVISIONING']

    def begin(self, payload: StaffCreate) -> str:
        now = _now().isoformat()
        row = self.backend.insert(self.table, {
            "id": str(uuid.uuid4()),
            "email": payload.email,
            "role": payload.role.value,
            "venue_id": payload.venue_id,
            "account_id": None,
            "status": ProvisioningStatus.PENDING.value,
            "error": None,
            "created_at": now,
            "updated_at": now,
        })
        return row["id"]

    def attach_account(self, record_id: str, account_id: str) -> None:
        self.backend.update(
            self.table,
            {"account_id": account_id, "updated_at": _now().isoformat()},
            {"id": record_id},
        )

    def mark(self, record_id: str, status: ProvisioningStatus, error: Optional[str] = None,
             account_id: Optional[str] = None) -> None:
        """Best effort: a pending record left behind is picked up by reconciliation."""
        values = {"status": status.value, "error": error, "updated_at": _now().isoformat()}
        if account_id:
            values["account_id"] = account_id
        try:
            self.backend.update(self.table, values, {"id": record_id})
        except Exception as e:
            logging.error(f"Failed to mark provisioning record {record_id} as {status.value}: {e}")

    def stale(self, older_than: datetime) -> List[Dict[str, Any]]:
        rows = []
        for status in (ProvisioningStatus.PENDING, ProvisioningStatus.COMPENSATION_FAILED):
            rows.extend(self.backend.select(
                self.table, {"status": status.value}, order=[("created_at", True)]
            ))
        stale_rows = []
        for row in rows:
            created_at = _parse_timestamp(row.get("created_at"))
            if created_at is None or created_at <= older_than:
                stale_rows.append(row)
        return stale_rows


def create_staff(backend, payload: StaffCreate, actor: Optional[ProfileResponse]) -> ProvisionedStaff:
    """Admin entry point: any staff role at any venue."""
    ensure_admin(actor)
    return _provision(backend, payload)


def create_bartender(backend, payload: BartenderCreate, actor: Optional[ProfileResponse]) -> ProvisionedStaff:
    """Manager entry point: bartenders at the manager's own venue only."""
    ensure_venue_manager(actor, payload.venue_id)
    if payload.role != UserRole.BARTENDER:
        raise NotAuthorized("Not authorized: managers can only create bartenders")
    return _provision(backend, payload)


def _provision(backend, payload: StaffCreate) -> ProvisionedStaff:
    journal = ProvisioningJournal(backend)
    try:
        record_id = journal.begin(payload)
    except Exception as e:
        logging.error(f"Could not open provisioning record for {payload.email}: {e}")
        raise TransportOrServerError(f"Internal Server Error: {e}") from e

    metadata = {"full_name": payload.full_name} if payload.full_name else None
    try:
        account_id = backend.create_account(payload.email, payload.password, metadata)
    except Exception as e:
        logging.error(f"Error creating auth user {payload.email}: {e}")
        journal.mark(record_id, ProvisioningStatus.FAILED, str(e))
        raise IdentityCreationFailed(f"Auth Error: {e}") from e
    logging.info(f"Auth user created: {account_id}")

    staff = ProvisionedStaff(
        account_id=account_id,
        email=payload.email,
        role=payload.role,
        venue_id=payload.venue_id,
        full_name=payload.full_name,
        phone_number=payload.phone_number,
    )
    try:
        journal.attach_account(record_id, account_id)
    except Exception as e:
        logging.error(f"Error attaching auth user {account_id} to provisioning record {record_id}: {e}")
        _compensate(backend, journal, record_id, account_id, f"Provisioning Journal Error: {e}", e)

    try:
        backend.upsert(TABLES['PROFILES'], {
            "id": account_id,
            **staff.profile_fields(),
            "updated_at": _now().isoformat(),
        })
    except Exception as e:
        logging.error(f"Error updating profile for {account_id}: {e}")
        _compensate(backend, journal, record_id, account_id, f"Profile Update Error: {e}", e)

    journal.mark(record_id, ProvisioningStatus.COMPLETED, account_id=account_id)
    logging.info(f"Profile updated for {account_id}")
    return staff


def _compensate(backend, journal: ProvisioningJournal, record_id: str, account_id: str,
                message: str, cause: Exception) -> None:
    """Delete the account created for a failed provisioning, then raise."""
    try:
        backend.delete_account(account_id)
    except Exception as cleanup_error:
        logging.error(f"Failed to clean up auth user {account_id}: {cleanup_error}")
        journal.mark(record_id, ProvisioningStatus.COMPENSATION_FAILED,
                     f"{message} | cleanup: {cleanup_error}", account_id=account_id)
        raise CompensationFailed(message, compensation_error=str(cleanup_error)) from cause

    logging.info(f"Cleaned up auth user {account_id} due to profile update error.")
    journal.mark(record_id, ProvisioningStatus.COMPENSATED, message, account_id=account_id)
    raise ProfileWriteFailed(message, compensated=True) from cause


def delete_staff(backend, account_id: str) -> None:
    """Delete an account; the profile row goes with it through the FK cascade."""
    try:
        backend.delete_account(account_id)
    except Exception as e:
        logging.error(f"Error deleting user {account_id}: {e}")
        raise IdentityDeletionFailed(f"Delete Error: {e}") from e
    logging.info(f"Successfully deleted user {account_id}")


def disable_staff(backend, account_id: str, actor: Optional[ProfileResponse]) -> None:
    """A manager disables one of the bartenders at their own venue."""
    manager = ensure_manager(actor)
    target = get_profile(backend, account_id)
    if target is None:
        raise ProfileNotFound("Error getting target user profile or profile not found")
    if target.venue_id != manager.venue_id:
        raise NotAuthorized("Not authorized: can only disable staff from your venue")
    if target.role != UserRole.BARTENDER:
        raise NotAuthorized("Not authorized: can only disable bartenders")

    try:
        backend.set_account_disabled(account_id, True)
    except Exception as e:
        logging.error(f"Error disabling user {account_id}: {e}")
        raise IdentityUpdateFailed(str(e)) from e
    logging.info(f"User {account_id} disabled by manager {manager.id}")


def assign_manager(backend, venue_id: str, account_id: str) -> None:
    """
    Make ``account_id`` the manager of ``venue_id``.

    Two dependent writes, profile first. A failed venue write leaves the
    profile pointing at the venue while the venue does not point back;
    there is no rollback and no uniqueness check.
    """
    try:
        profile_rows = backend.select(TABLES['PROFILES'], {"id": account_id}, columns="id, role, venue_id")
    except Exception as e:
        logging.error(f"Error fetching profile for {account_id}: {e}")
        raise TransportOrServerError(f"Internal Server Error: {e}") from e
    if not profile_rows:
        raise ProfileNotFound(f"Manager user profile not found (ID: {account_id}).")

    try:
        backend.update(
            TABLES['PROFILES'],
            {"role": UserRole.MANAGER.value, "venue_id": venue_id, "updated_at": _now().isoformat()},
            {"id": account_id},
        )
    except Exception as e:
        logging.error(f"Error updating profile for manager {account_id}: {e}")
        raise ProfileWriteFailed(f"Failed to update manager profile: {e}") from e
    logging.info(f"Profile updated for manager {account_id}")

    try:
        backend.update(TABLES['VENUES'], {"manager_id": account_id}, {"id": venue_id})
    except Exception as e:
        logging.error(f"Error updating venue {venue_id}: {e}")
        raise VenueWriteFailed(f"Failed to update venue assignment: {e}") from e
    logging.info(f"Venue {venue_id} updated with manager {account_id}")


def get_profile(backend, account_id: str) -> Optional[ProfileResponse]:
    try:
        rows = backend.select(TABLES['PROFILES'], {"id": account_id})
    except Exception as e:
        logging.error(f"Error fetching profile for {account_id}: {e}")
        raise TransportOrServerError(f"Internal Server Error: {e}") from e
    return ProfileResponse.from_row(rows[0]) if rows else None


def reconcile_provisioning(backend, stale_after: timedelta, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Settle provisioning attempts that never reached a terminal state.

    Only accounts whose id was attached to the record are ever deleted; an
    account found by email alone may predate the attempt.
    """
    now = now or _now()
    journal = ProvisioningJournal(backend)
    summary = {status.value: 0 for status in ProvisioningStatus if status != ProvisioningStatus.PENDING}
    summary["skipped"] = 0

    for record in journal.stale(now - stale_after):
        try:
            outcome = _reconcile_record(backend, journal, record)
        except Exception as e:
            logging.error(f"Could not reconcile provisioning record {record.get('id')}: {e}")
            summary["skipped"] += 1
            continue
        summary[outcome.value] += 1

    logging.info(f"Provisioning reconciliation finished: {summary}")
    return summary


def _profile_matches(backend, account_id: str, record: Dict[str, Any]) -> bool:
    profile = get_profile(backend, account_id)
    return (
        profile is not None
        and profile.role.value == record.get("role")
        and profile.venue_id == record.get("venue_id")
    )


def _reconcile_record(backend, journal: ProvisioningJournal, record: Dict[str, Any]) -> ProvisioningStatus:
    record_id = record["id"]
    account_id = record.get("account_id")

    if not account_id:
        found = backend.find_account_id(record["email"])
        if found and _profile_matches(backend, found, record):
            journal.mark(record_id, ProvisioningStatus.COMPLETED, account_id=found)
            return ProvisioningStatus.COMPLETED
        if found:
            logging.warning(
                f"Account {found} exists for {record['email']} but was never attached to "
                f"provisioning record {record_id}; leaving it for manual review"
            )
        journal.mark(record_id, ProvisioningStatus.FAILED, "No account attached to provisioning record")
        return ProvisioningStatus.FAILED

    if _profile_matches(backend, account_id, record):
        journal.mark(record_id, ProvisioningStatus.COMPLETED, account_id=account_id)
        return ProvisioningStatus.COMPLETED

    if not backend.account_exists(account_id):
        # Removed by an earlier cleanup whose journal update was lost
        logging.info(f"Auth user {account_id} for provisioning record {record_id} is already gone")
        journal.mark(record_id, ProvisioningStatus.COMPENSATED, "Account already removed",
                     account_id=account_id)
        return ProvisioningStatus.COMPENSATED

    try:
        backend.delete_account(account_id)
    except Exception as e:
        logging.error(f"Failed to delete orphaned auth user {account_id}: {e}")
        journal.mark(record_id, ProvisioningStatus.COMPENSATION_FAILED, f"cleanup: {e}", account_id=account_id)
        return ProvisioningStatus.COMPENSATION_FAILED

    logging.info(f"Deleted orphaned auth user {account_id} for provisioning record {record_id}")
    journal.mark(record_id, ProvisioningStatus.COMPENSATED, "Orphaned account removed by reconciliation",
                 account_id=account_id)
    return ProvisioningStatus.COMPENSATED
