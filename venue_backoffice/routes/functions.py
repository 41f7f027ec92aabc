# venue_backoffice/routes/functions.py
"""
Privileged server-side functions.

JSON in, ``{"success": bool, "message": str, ...}`` out. Each function
authenticates its caller from the bearer token and re-checks role and venue
itself; the page middleware does not guard these paths.
"""
from fastapi import APIRouter, Depends, Request
import logging

from venue_backoffice.schemas import parse_payload
from venue_backoffice.schemas.staff import AccountRef, BartenderCreate, ManagerAssignment, StaffCreate
from venue_backoffice.services.access import ensure_admin
from venue_backoffice.services.errors import ValidationFailed
from venue_backoffice.services.provisioning import (
    assign_manager,
    create_bartender,
    create_staff,
    delete_staff,
    disable_staff,
    get_profile,
)
from venue_backoffice.utils.auth import get_backend, get_database, get_function_caller

router = APIRouter(prefix="/functions/v1", tags=["functions"])


async def read_json(request: Request):
    try:
        return await request.json()
    except ValueError:
        raise ValidationFailed("Request body must be valid JSON.")


@router.post("/create-staff-user")
async def create_staff_user(
    request: Request,
    caller=Depends(get_function_caller),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    payload = parse_payload(StaffCreate, await read_json(request))
    staff = create_staff(backend, payload, caller)
    db.invalidate_staff(venue_id=staff.venue_id, user_id=staff.account_id)
    return {"success": True, "message": "Staff user created successfully.", "userId": staff.account_id}


@router.post("/create-bartender-user")
async def create_bartender_user(
    request: Request,
    caller=Depends(get_function_caller),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    payload = parse_payload(BartenderCreate, await read_json(request))
    staff = create_bartender(backend, payload, caller)
    db.invalidate_staff(venue_id=staff.venue_id, user_id=staff.account_id)
    return {
        "success": True,
        "message": "Bartender created successfully.",
        "user": {"id": staff.account_id, "email": staff.email},
        "profile": staff.to_dict(),
    }


@router.post("/delete-staff-user")
async def delete_staff_user(
    request: Request,
    caller=Depends(get_function_caller),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    payload = parse_payload(AccountRef, await read_json(request))
    ensure_admin(caller)
    target = get_profile(backend, payload.user_id)
    delete_staff(backend, payload.user_id)
    db.invalidate_staff(venue_id=target.venue_id if target else None, user_id=payload.user_id)
    return {"success": True, "message": "User deleted successfully."}


@router.post("/disable-staff-user")
async def disable_staff_user(
    request: Request,
    caller=Depends(get_function_caller),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    payload = parse_payload(AccountRef, await read_json(request))
    disable_staff(backend, payload.user_id, caller)
    db.invalidate_staff(venue_id=caller.venue_id, user_id=payload.user_id)
    return {"success": True, "message": "User account has been disabled", "userId": payload.user_id}


@router.post("/assign-venue-manager")
async def assign_venue_manager(
    request: Request,
    caller=Depends(get_function_caller),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    payload = parse_payload(ManagerAssignment, await read_json(request))
    ensure_admin(caller)
    try:
        assign_manager(backend, payload.venue_id, payload.manager_user_id)
    finally:
        db.invalidate_venue(payload.venue_id)
        db.invalidate_staff(venue_id=payload.venue_id, user_id=payload.manager_user_id)
    logging.info(f"Admin {caller.id} assigned {payload.manager_user_id} to venue {payload.venue_id}")
    return {"success": True, "message": "Manager assigned successfully."}
