"""Location provider contract used by location reminders.

The platform supplies the provider (permission prompt, GPS fix, reverse
geocoding); this module only turns its answers into a ``Place``.
"""

import enum
from typing import Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from config import settings
from errors import PermissionDeniedError
from logger_config import setup_logger
from schemas import Place

logger = setup_logger(__name__, 'location.log')


class PermissionStatus(str, enum.Enum):
    """Answer to a foreground location permission request"""
    GRANTED = "granted"
    DENIED = "denied"


class Coordinate(BaseModel):
    """Raw position reported by the device"""

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class LocationProvider(Protocol):
    """What the platform must implement to feed location reminders."""

    async def request_permission(self) -> PermissionStatus:
        ...

    async def get_current_position(self) -> Coordinate:
        ...

    async def reverse_geocode(self, coordinate: Coordinate) -> Optional[str]:
        ...


async def resolve_current_place(provider: LocationProvider) -> Place:
    """Ask for permission, read the current position and name it.

    A geocoder that has no answer or fails falls back to
    ``settings.UNKNOWN_PLACE_NAME``; the coordinate is what matters.

    Raises:
        PermissionDeniedError: When the user refuses location access
    """
    status = PermissionStatus(await provider.request_permission())
    if status != PermissionStatus.GRANTED:
        logger.info("Location permission denied")
        raise PermissionDeniedError("Allow location access to set reminders.")

    coordinate = await provider.get_current_position()

    try:
        name = await provider.reverse_geocode(coordinate)
    except Exception as e:
        logger.warning(
            f"Reverse geocoding failed for {coordinate.latitude},{coordinate.longitude}: {str(e)}"
        )
        name = None

    place = Place(
        name=name or settings.UNKNOWN_PLACE_NAME,
        latitude=coordinate.latitude,
        longitude=coordinate.longitude,
    )
    logger.info(f"Resolved current place: {place.name} ({place.latitude}, {place.longitude})")
    return place
