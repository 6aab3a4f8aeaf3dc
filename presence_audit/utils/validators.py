"""Input validation utilities for URLs, deep links, and audit parameters."""

from typing import Optional
from urllib.parse import parse_qs, urlparse

# Fixed Pro-tier search radii: 1, 2, 3 and 5 miles.
ALLOWED_RADII_METERS: tuple[int, ...] = (1609, 3219, 4828, 8047)
RADIUS_BY_MILES: dict[int, int] = {1: 1609, 2: 3219, 3: 4828, 5: 8047}


def validate_url(url: str) -> tuple[bool, str]:
    """Validate a URL string.

    Args:
        url: The URL to validate.

    Returns:
        Tuple of (is_valid, error_message).  error_message is empty on success.
    """
    if not url or not isinstance(url, str):
        return False, "URL is empty or not a string."
    url = url.strip()
    try:
        parsed = urlparse(url)
    except ValueError as exc:
        return False, f"URL parse error: {exc}"
    if parsed.scheme not in ("http", "https"):
        return False, f"Invalid scheme: {parsed.scheme!r}. Must be http or https."
    if not parsed.netloc:
        return False, "URL has no network location (domain)."
    hostname = parsed.hostname or ""
    if not hostname or len(hostname) > 253:
        return False, "Invalid hostname length."
    return True, ""


def extract_place_id(maps_url: str) -> Optional[str]:
    """Pull a place id out of a Google Maps deep link.

    ``query_place_id`` is read, or ``place_id`` when it is absent. The id
    found is accepted only with the ``Ch`` prefix.

    Examples:
        >>> extract_place_id("https://www.google.com/maps/search/?api=1&query_place_id=ChIJabc")
        'ChIJabc'
        >>> extract_place_id("https://maps.google.com/?query_place_id=abc&place_id=ChIJabc") is None
        True
        >>> extract_place_id("https://maps.google.com/?cid=123") is None
        True
    """
    ok, _ = validate_url(maps_url)
    if not ok:
        return None
    params = parse_qs(urlparse(maps_url.strip()).query)
    values = params.get("query_place_id") or params.get("place_id") or []
    if values and values[0].startswith("Ch"):
        return values[0]
    return None


def validate_radius(radius_meters: int) -> tuple[bool, str]:
    """Check that a Pro-tier radius is one of the supported presets."""
    if radius_meters in ALLOWED_RADII_METERS:
        return True, ""
    allowed = ", ".join(str(r) for r in ALLOWED_RADII_METERS)
    return False, f"Unsupported radius {radius_meters!r}; choose one of {allowed} metres."
