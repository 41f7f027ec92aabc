# venue_backoffice/routes/user_management.py
from fastapi import APIRouter, Depends, HTTPException, status
import logging

from venue_backoffice.schemas.staff import StaffCreate
from venue_backoffice.services.provisioning import create_staff, delete_staff
from venue_backoffice.utils.auth import get_admin_user, get_backend, get_database

router = APIRouter(prefix="/admin/users", tags=["user_management"])


@router.get("")
async def user_list(current_profile=Depends(get_admin_user), db=Depends(get_database)):
    """List managers and bartenders (admin only)."""
    return db.get_staff_profiles()


@router.get("/{user_id}")
async def user_profile(user_id: str, current_profile=Depends(get_admin_user), db=Depends(get_database)):
    """A staff profile and the venue it is assigned to."""
    profile = db.get_profile(user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail="User not found")
    venue = db.get_venue(profile["venue_id"]) if profile.get("venue_id") else None
    return {"profile": profile, "venue": venue}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: StaffCreate,
    current_profile=Depends(get_admin_user),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    """Create a manager or bartender account (admin only)."""
    logging.info(f"Creating user - Email: {payload.email}, Role: {payload.role.value}, Venue: {payload.venue_id}")
    staff = create_staff(backend, payload, current_profile)
    db.invalidate_staff(venue_id=staff.venue_id, user_id=staff.account_id)
    return {
        "success": True,
        "message": "Staff user created successfully.",
        "userId": staff.account_id,
        "profile": staff.to_dict(),
    }


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    current_profile=Depends(get_admin_user),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    """Delete a staff account; its profile row is removed by the store (admin only)."""
    profile = db.get_profile(user_id)
    delete_staff(backend, user_id)
    db.invalidate_staff(venue_id=(profile or {}).get("venue_id"), user_id=user_id)
    return {"success": True, "message": "User deleted successfully."}
