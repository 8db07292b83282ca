"""Location registry — the default warehouse and location lookups."""

import logging

from ..config import settings
from ..models import Location
from ..repositories import InventoryRepository

log = logging.getLogger("stockledger.locations")


def get_or_create_location(repo: InventoryRepository, code: str | None = None,
                           name: str | None = None) -> Location:
    """Return the location with ``code``, creating it on first use."""
    code = code or settings.default_location_code
    location = repo.get_location_by_code(code)
    if location is not None:
        return location
    with repo.transaction():
        location = repo.add_location(Location(code=code, name=name or settings.default_location_name))
    log.info("Created location %s (id=%s)", code, location.id)
    return location


def location_to_dict(location: Location | None) -> dict | None:
    if location is None:
        return None
    return {"id": location.id, "code": location.code, "name": location.name}
