# venue_backoffice/routes/staff.py
from fastapi import APIRouter, Body, Depends, status
import logging

from venue_backoffice.schemas import parse_payload
from venue_backoffice.schemas.staff import BartenderCreate
from venue_backoffice.services.provisioning import create_bartender, disable_staff
from venue_backoffice.utils.auth import get_backend, get_database, get_manager_user

router = APIRouter(prefix="/manager/staff", tags=["staff"])


@router.get("")
async def list_staff(current_profile=Depends(get_manager_user), db=Depends(get_database)):
    """Bartenders at the manager's venue, newest first."""
    return db.get_venue_staff(current_profile.venue_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_staff_member(
    body: dict = Body(...),
    current_profile=Depends(get_manager_user),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    """Create a bartender at the manager's own venue."""
    payload = parse_payload(BartenderCreate, {"venue_id": current_profile.venue_id, **body})
    staff = create_bartender(backend, payload, current_profile)
    db.invalidate_staff(venue_id=staff.venue_id, user_id=staff.account_id)
    return {"success": True, "user": {"id": staff.account_id, "email": staff.email}, "profile": staff.to_dict()}


@router.post("/{user_id}/disable")
async def disable_staff_member(
    user_id: str,
    current_profile=Depends(get_manager_user),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    disable_staff(backend, user_id, current_profile)
    db.invalidate_staff(venue_id=current_profile.venue_id, user_id=user_id)
    logging.info(f"Manager {current_profile.id} disabled bartender {user_id}")
    return {"success": True, "message": "User account has been disabled", "userId": user_id}
