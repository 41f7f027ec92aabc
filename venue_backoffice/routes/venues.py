# venue_backoffice/routes/venues.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
import logging

from venue_backoffice.schemas.staff import ManagerAssignmentRequest
from venue_backoffice.schemas.venue import VenueCreate, VenueResponse, VenueUpdate
from venue_backoffice.services.provisioning import assign_manager
from venue_backoffice.utils.auth import get_admin_user, get_backend, get_database

router = APIRouter(prefix="/admin/venues", tags=["venues"])


@router.get("", response_model=List[VenueResponse])
async def list_venues(current_profile=Depends(get_admin_user), db=Depends(get_database)):
    """List all venues, newest first (admin only)."""
    return db.get_venues()


@router.post("", response_model=VenueResponse, status_code=status.HTTP_201_CREATED)
async def create_venue(venue: VenueCreate, current_profile=Depends(get_admin_user), db=Depends(get_database)):
    """Create venue (admin only)."""
    created = db.create_venue(venue.model_dump(mode="json"))
    logging.info(f"Venue {created.get('id')} created by {current_profile.id}")
    return created


@router.get("/{venue_id}")
async def venue_profile(venue_id: str, current_profile=Depends(get_admin_user), db=Depends(get_database)):
    """Venue with its manager of record and its bartenders."""
    venue = db.get_venue(venue_id)
    if venue is None:
        raise HTTPException(status_code=404, detail="Venue not found")

    manager = db.get_profile(venue["manager_id"]) if venue.get("manager_id") else None
    return {
        "venue": venue,
        "manager": manager,
        "staff": db.get_venue_staff(venue_id),
    }


@router.patch("/{venue_id}", response_model=VenueResponse)
async def update_venue(venue_id: str, venue: VenueUpdate,
                       current_profile=Depends(get_admin_user), db=Depends(get_database)):
    """Update venue (admin only)."""
    changes = venue.model_dump(mode="json", exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    updated = db.update_venue(venue_id, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail="Venue not found")
    return updated


@router.delete("/{venue_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_venue(venue_id: str, current_profile=Depends(get_admin_user), db=Depends(get_database)):
    """Delete venue (admin only)."""
    if not db.delete_venue(venue_id):
        raise HTTPException(status_code=404, detail="Venue not found")
    logging.info(f"Venue {venue_id} deleted by {current_profile.id}")


@router.post("/{venue_id}/manager")
async def assign_venue_manager(
    venue_id: str,
    assignment: ManagerAssignmentRequest,
    current_profile=Depends(get_admin_user),
    backend=Depends(get_backend),
    db=Depends(get_database),
):
    """Make an existing account the manager of this venue (admin only)."""
    try:
        assign_manager(backend, venue_id, assignment.manager_user_id)
    finally:
        # A failed venue write still changed the profile
        db.invalidate_venue(venue_id)
        db.invalidate_staff(venue_id=venue_id, user_id=assignment.manager_user_id)
    return {"success": True, "message": "Manager assigned successfully."}
