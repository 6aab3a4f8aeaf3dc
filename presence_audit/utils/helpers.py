"""General-purpose helper utilities for the presence audit engine."""

import math
import re
import unicodedata
from typing import Iterable

EARTH_RADIUS_MILES = 3958.7613
METERS_PER_MILE = 1609.34


def slugify(text: str, max_length: int = 120) -> str:
    """Convert text to a stable, URL-safe identifier.

    Every run of characters outside ``[a-z0-9]`` collapses into one hyphen,
    so punctuation such as ``:`` separates words instead of gluing them.

    Examples:
        >>> slugify("critical:Add complete business hours")
        'critical-add-complete-business-hours'
        >>> slugify("  Add secondary categories (3+ recommended)  ")
        'add-secondary-categories-3-recommended'
    """
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    if len(text) > max_length:
        text = text[:max_length].rsplit("-", 1)[0]
    return text


def clamp(value: float, low: float, high: float) -> float:
    """Bound *value* to ``[low, high]``."""
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def grade_from_score(score: float) -> str:
    """Map a 0-100 score onto a letter grade."""
    if score >= 90:
        return "A"
    if score >= 80:
        return "B"
    if score >= 70:
        return "C"
    if score >= 60:
        return "D"
    return "F"


def meters_to_miles(meters: float) -> float:
    return meters / METERS_PER_MILE


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in miles between two lat/lng points.

    Args:
        lat1: Latitude of the first point in degrees.
        lng1: Longitude of the first point in degrees.
        lat2: Latitude of the second point in degrees.
        lng2: Longitude of the second point in degrees.

    Returns:
        Distance in statute miles using the mean Earth radius.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(h)))


def digits_only(text: str | None) -> str:
    """Strip everything but ASCII digits (phone normalisation)."""
    return re.sub(r"\D", "", text or "")


def dedupe(items: Iterable[str], limit: int | None = None) -> list[str]:
    """Drop repeated strings, keeping first-seen order, then cap at *limit*."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out[:limit] if limit is not None else out


def progress_blocks(score: float, max_score: float, total_blocks: int = 10) -> str:
    """Render a score as a fixed-width text bar.

    Examples:
        >>> progress_blocks(15, 30)
        '▰▰▰▰▰▱▱▱▱▱'
    """
    pct = score / max_score if max_score > 0 else 0
    filled = int(clamp(round_half_up(pct * total_blocks), 0, total_blocks))
    return "▰" * filled + "▱" * (total_blocks - filled)
