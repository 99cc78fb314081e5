"""Repository for the Venue aggregate."""

from protean.exceptions import ObjectNotFoundError

from flash_offers.domain import flash_offers
from flash_offers.venue.venue import Venue


@flash_offers.repository(part_of=Venue)
class VenueRepository:
    def find_venue(self, venue_id: str) -> Venue | None:
        try:
            return self.get(venue_id)
        except ObjectNotFoundError:
            return None

    def coordinates_for(self, venue_ids) -> dict[str, tuple[float, float]]:
        """Map venue id to ``(latitude, longitude)`` for venues that have a location."""
        ids = list({str(venue_id) for venue_id in venue_ids})
        if not ids:
            return {}

        venues = self._dao.query.filter(id__in=ids).limit(len(ids)).all().items
        return {
            str(venue.id): (venue.latitude, venue.longitude) for venue in venues if venue.has_location
        }
