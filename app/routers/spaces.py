from datetime import date, time
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.db import get_db
from app.schemas.space import PricingRule, SpaceAvailability, SpaceCreate, SpaceResponse, SpaceUpdate
from app.services.spaces import SpaceSearch, SpaceService
from app.utils.access import Actor, Role, require_roles
from app.utils.auth import get_current_user


router = APIRouter(
    prefix="/spaces",
    tags=["spaces"],
)


@router.get("/", response_model=List[SpaceResponse])
def get_spaces(db: Session = Depends(get_db)):
    """
    Retrieve all active spaces, newest first.
    """
    return SpaceService(db).list()


@router.get("/search", response_model=List[SpaceResponse])
def search_spaces(
    location: Optional[str] = None,
    min_capacity: Optional[int] = Query(default=None, ge=1),
    max_price: Optional[float] = Query(default=None, ge=0),
    amenities: Optional[str] = None,
    date: Optional[date] = None,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
    db: Session = Depends(get_db),
):
    """
    Search active spaces.

    - **location**: substring of the address (case-insensitive).
    - **min_capacity**: minimum capacity.
    - **max_price**: maximum hourly rate of the first pricing rule.
    - **amenities**: comma-separated list; every amenity must be present.
    - **date**, **start_time**, **end_time**: local window; spaces with a
      confirmed or checked-in reservation overlapping it are excluded.
    """
    filters = SpaceSearch(
        location=location,
        min_capacity=min_capacity,
        max_price=max_price,
        amenities=[a.strip() for a in amenities.split(",") if a.strip()] if amenities else [],
        day=date,
        start_time=start_time,
        end_time=end_time,
    )
    return SpaceService(db).search(filters)


@router.get("/my/spaces", response_model=List[SpaceResponse])
def get_my_spaces(db: Session = Depends(get_db), current_user: Actor = Depends(require_roles(Role.BRAND_OWNER))):
    """
    Retrieve every space owned by the caller, active or not.
    """
    return SpaceService(db).list_by_owner(current_user.id)


@router.get("/{space_id}", response_model=SpaceResponse)
def get_space(space_id: str, db: Session = Depends(get_db)):
    """
    Retrieve a specific space by ID.
    """
    return SpaceService(db).get(space_id)


@router.post("/", response_model=SpaceResponse, status_code=status.HTTP_201_CREATED)
def create_space(space: SpaceCreate, db: Session = Depends(get_db),
                 current_user: Actor = Depends(require_roles(Role.BRAND_OWNER))):
    """
    Create a new space owned by the caller.
    Requires the brand_owner role.
    """
    return SpaceService(db).create(space, current_user.id)


@router.put("/{space_id}", response_model=SpaceResponse)
def update_space(space_id: str, space_update: SpaceUpdate, db: Session = Depends(get_db),
                 current_user: Actor = Depends(get_current_user)):
    """
    Update a space's details.
    Requires ownership.
    """
    return SpaceService(db).update(space_id, space_update, current_user)


@router.delete("/{space_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_space(space_id: str, db: Session = Depends(get_db), current_user: Actor = Depends(get_current_user)):
    """
    Delete a space and its reservations.
    Requires ownership.
    """
    SpaceService(db).remove(space_id, current_user)
    return None


@router.post("/{space_id}/pricing", response_model=SpaceResponse)
def add_pricing_rule(space_id: str, rule: PricingRule, db: Session = Depends(get_db),
                     current_user: Actor = Depends(require_roles(Role.BRAND_OWNER))):
    """
    Append a pricing rule. The first rule is the effective hourly rate.
    """
    return SpaceService(db).add_pricing_rule(space_id, rule, current_user)


@router.patch("/{space_id}/availability", response_model=SpaceResponse)
def set_availability(space_id: str, availability: SpaceAvailability, db: Session = Depends(get_db),
                     current_user: Actor = Depends(get_current_user)):
    """
    Enable or disable bookings for a space.
    """
    return SpaceService(db).set_availability(space_id, current_user, availability.is_active)
