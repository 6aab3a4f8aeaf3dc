"""Best-effort phone/address consistency between a profile and its website."""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from presence_audit.models.analysis import NapCheck, Verification
from presence_audit.models.profile import PlaceProfile
from presence_audit.utils.helpers import digits_only

logger = logging.getLogger(__name__)

MIN_ADDRESS_TOKEN_LENGTH = 7


def page_text(html: str) -> str:
    """Lower-cased searchable text of a page.

    Visible text, ``tel:`` link targets and JSON-LD blocks are combined, since
    businesses often publish their phone and address only in markup.
    """
    soup = BeautifulSoup(html, "html.parser")
    parts = [soup.get_text(" ")]
    for link in soup.find_all("a", href=True):
        href = link["href"]
        if href.lower().startswith("tel:"):
            parts.append(href[4:])
    for script in soup.find_all("script", type="application/ld+json"):
        parts.append(script.string or "")
    text = " ".join(parts).lower()
    return re.sub(r"\s+", " ", text)


def address_token(formatted_address: str) -> str:
    """Street part of an address (text before the first comma), lower-cased."""
    return (formatted_address or "").lower().split(",")[0].strip()


def match_phone(place: PlaceProfile, text: str) -> Optional[bool]:
    phone = digits_only(place.phone)
    if not phone:
        return None
    return phone in digits_only(text)


def match_address(place: PlaceProfile, text: str) -> Optional[bool]:
    token = address_token(place.formatted_address)
    if len(token) < MIN_ADDRESS_TOKEN_LENGTH:
        return None
    return re.sub(r"\s+", " ", token) in text


def check_nap(place: PlaceProfile, html: Optional[str]) -> NapCheck:
    """Compare the profile's phone and street address with *html*.

    Each field is ``unknown`` when there is no page to read or nothing usable
    to look for (no phone digits, an address token of 6 characters or fewer).
    """
    if not html:
        return NapCheck()
    text = page_text(html)
    result = NapCheck(
        phone=Verification.from_match(match_phone(place, text)),
        address=Verification.from_match(match_address(place, text)),
        website_fetched=True,
    )
    logger.debug(
        "NAP check for %s: phone=%s address=%s",
        place.place_id or place.name, result.phone.value, result.address.value,
    )
    return result
