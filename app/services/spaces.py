import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload
from app.models.reservation import OCCUPYING_STATUSES, Reservation
from app.models.space import Space
from app.schemas.space import PricingRule, SpaceCreate, SpaceUpdate
from app.utils.access import Actor, ensure_owner
from app.utils.errors import BadRequestError, NotFoundError
from app.utils.validation_helpers import is_valid_id, local_window

logger = logging.getLogger(__name__)

OWNERSHIP_MESSAGE = "You can only update your own spaces"


@dataclass
class SpaceSearch:
    location: Optional[str] = None
    min_capacity: Optional[int] = None
    max_price: Optional[float] = None
    amenities: List[str] = field(default_factory=list)
    day: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @property
    def has_window(self) -> bool:
        return bool(self.day and self.start_time and self.end_time)


class SpaceService:
    """Space catalog: brand-owner scoped CRUD plus public read and search."""

    def __init__(self, session: Session):
        self.session = session

    def _query(self):
        return self.session.query(Space).options(joinedload(Space.owner))

    def list(self) -> List[Space]:
        spaces = (
            self._query()
            .filter(Space.is_active.is_(True))
            .order_by(Space.created_at.desc())
            .all()
        )
        logger.debug(f"Retrieved {len(spaces)} active spaces")
        return spaces

    def get(self, space_id: str) -> Space:
        if not is_valid_id(space_id):
            logger.error(f"Invalid space id: {space_id}")
            raise NotFoundError("Invalid space ID")
        space = self._query().filter(Space.id == space_id).first()
        if not space:
            logger.error(f"Space not found: {space_id}")
            raise NotFoundError("Space not found")
        return space

    def list_by_owner(self, owner_id: str) -> List[Space]:
        return (
            self._query()
            .filter(Space.owner_id == owner_id)
            .order_by(Space.created_at.desc())
            .all()
        )

    def create(self, data: SpaceCreate, owner_id: str) -> Space:
        space = Space(**data.model_dump(mode="json"), owner_id=owner_id, is_active=True)
        self.session.add(space)
        self.session.commit()
        self.session.refresh(space)
        logger.debug(f"Created space {space.id} for owner {owner_id}")
        return space

    def _owned(self, space_id: str, actor: Actor) -> Space:
        space = self.get(space_id)
        ensure_owner(actor, space.owner_id, OWNERSHIP_MESSAGE)
        return space

    def update(self, space_id: str, data: SpaceUpdate, actor: Actor) -> Space:
        space = self._owned(space_id, actor)
        for key, value in data.model_dump(mode="json", exclude_unset=True).items():
            if value is None and key in ("name", "capacity", "amenities", "pricing_rules", "is_active"):
                continue
            setattr(space, key, value)
        self.session.commit()
        self.session.refresh(space)
        logger.debug(f"Updated space {space_id}")
        return space

    def remove(self, space_id: str, actor: Actor) -> None:
        space = self.get(space_id)
        ensure_owner(actor, space.owner_id, "You can only delete your own spaces")
        self.session.delete(space)
        self.session.commit()
        logger.debug(f"Deleted space {space_id}")

    def add_pricing_rule(self, space_id: str, rule: PricingRule, actor: Actor) -> Space:
        space = self._owned(space_id, actor)
        # Reassign so the JSON column is flagged dirty
        space.pricing_rules = list(space.pricing_rules or []) + [rule.model_dump(mode="json")]
        self.session.commit()
        self.session.refresh(space)
        logger.debug(f"Added {rule.type} pricing rule to space {space_id}")
        return space

    def set_availability(self, space_id: str, actor: Actor, is_active: bool) -> Space:
        space = self._owned(space_id, actor)
        space.is_active = is_active
        self.session.commit()
        self.session.refresh(space)
        logger.debug(f"Space {space_id} is_active={is_active}")
        return space

    def search(self, filters: SpaceSearch) -> List[Space]:
        query = self._query().filter(Space.is_active.is_(True))

        if filters.location:
            query = query.filter(Space.address.ilike(f"%{filters.location}%"))
        if filters.min_capacity is not None:
            query = query.filter(Space.capacity >= filters.min_capacity)

        if filters.has_window:
            start, end = local_window(filters.day, filters.start_time, filters.end_time)
            if start >= end:
                logger.error(f"Invalid search window: {filters.start_time} to {filters.end_time}")
                raise BadRequestError("End time must be after start time")
            conflicting = select(Reservation.space_id).where(
                Reservation.status.in_(OCCUPYING_STATUSES),
                Reservation.start_time < end,
                Reservation.end_time > start,
            )
            query = query.filter(~Space.id.in_(conflicting))

        spaces = query.order_by(Space.created_at.desc()).all()

        # JSON columns are filtered here to stay portable across databases
        if filters.max_price is not None:
            spaces = [
                space for space in spaces
                if space.hourly_rate is not None and space.hourly_rate <= filters.max_price
            ]
        if filters.amenities:
            wanted = set(filters.amenities)
            spaces = [space for space in spaces if wanted.issubset(space.amenities or [])]

        logger.debug(f"Search matched {len(spaces)} spaces")
        return spaces
