"""Driving-directions deep links for station coordinates."""

from __future__ import annotations

import math
from typing import Dict, List, Optional, Tuple

import httpx

GOOGLE_MAPS_BASE_URL = "https://www.google.com/maps/dir/"
TRAVEL_MODES = ("driving", "walking", "bicycling", "transit")


class NavigationError(ValueError):
    """Raised when a directions link cannot be built from the given input."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("Invalid navigation parameters: " + ", ".join(errors))


def validate_coordinates(latitude: float, longitude: float, travel_mode: str = "driving") -> List[str]:
    """Return every problem found with the inputs (empty when valid)."""
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        return ["Invalid coordinates: non-finite values detected"]

    errors: List[str] = []
    if latitude < -90 or latitude > 90:
        errors.append(f"Invalid latitude: {latitude} (must be between -90 and 90)")
    if longitude < -180 or longitude > 180:
        errors.append(f"Invalid longitude: {longitude} (must be between -180 and 180)")
    if travel_mode not in TRAVEL_MODES:
        errors.append(f"Invalid travel mode: {travel_mode}")
    return errors


def build_directions_url(
    latitude: float,
    longitude: float,
    travel_mode: str = "driving",
    avoid_highways: bool = False,
    avoid_tolls: bool = False,
    destination: Optional[str] = None,
) -> str:
    """Build a Google Maps directions link.

    Raises:
        NavigationError: if the coordinates or travel mode are invalid.
    """
    errors = validate_coordinates(latitude, longitude, travel_mode)
    if errors:
        raise NavigationError(errors)

    params: List[Tuple[str, str]] = [
        ("api", "1"),
        ("destination", destination or f"{latitude},{longitude}"),
        ("travelmode", travel_mode),
    ]
    if avoid_highways:
        params.append(("avoid", "highways"))
    if avoid_tolls:
        params.append(("avoid", "tolls"))

    return str(httpx.URL(GOOGLE_MAPS_BASE_URL, params=params))


def fallback_navigation_options(latitude: float, longitude: float) -> List[Dict[str, str]]:
    """Alternative map providers offered when the primary link cannot be opened."""
    return [
        {
            "name": "Apple Maps",
            "url": f"https://maps.apple.com/?daddr={latitude},{longitude}",
            "description": "Navigate with Apple Maps",
        },
        {
            "name": "Waze",
            "url": f"https://waze.com/ul?ll={latitude},{longitude}&navigate=yes",
            "description": "Navigate with Waze",
        },
        {
            "name": "OpenStreetMap",
            "url": f"https://www.openstreetmap.org/directions?to={latitude},{longitude}",
            "description": "View directions on OpenStreetMap",
        },
        {
            "name": "Copy Coordinates",
            "url": f"{latitude}, {longitude}",
            "description": "Copy coordinates to clipboard",
        },
    ]
