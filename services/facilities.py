from sqlalchemy import func

from models.facility import Facility
from services.errors import NotFoundError


class FacilityDirectory:
    """Read access to venues plus the single writer of their rating fields."""

    def __init__(self, session):
        self.session = session

    def search(self, city=None, sport=None, q=None, limit=200):
        query = (
            self.session.query(Facility)
            .filter(Facility.is_active.is_(True), Facility.is_approved.is_(True))
        )
        if city:
            query = query.filter(func.lower(Facility.city) == city.strip().lower())
        if q:
            literal = q.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            query = query.filter(Facility.name.ilike(f"%{literal}%", escape="\\"))

        rows = query.order_by(Facility.created_at.desc(), Facility.id.desc()).all()

        # sports is a JSON list; substring match done here to stay portable
        if sport:
            needle = sport.strip().lower()
            rows = [f for f in rows if any(needle in (s or "").lower() for s in (f.sports or []))]
        return rows[:limit]

    def get(self, facility_id):
        if facility_id is None:
            return None
        return self.session.get(Facility, facility_id)

    def get_bookable(self, facility_id) -> Facility:
        facility = self.get(facility_id)
        if facility is None or not facility.is_active or not facility.is_approved:
            raise NotFoundError("facility not found", code="facility_not_found")
        return facility

    def list_for_owner(self, owner_id):
        return (
            self.session.query(Facility)
            .filter(Facility.owner_id == owner_id)
            .order_by(Facility.created_at.desc(), Facility.id.desc())
            .all()
        )

    def lock(self, facility_id) -> Facility:
        # Row lock on backends that support it; SQLite ignores FOR UPDATE
        facility = (
            self.session.query(Facility)
            .filter(Facility.id == facility_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if facility is None:
            raise NotFoundError("facility not found", code="facility_not_found")
        return facility

    def apply_rating(self, facility: Facility, average: float, count: int) -> None:
        facility.rating = average
        facility.rating_count = count
