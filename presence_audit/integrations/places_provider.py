"""Place data provider adapters: autocomplete, place details and nearby search."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import httpx

from presence_audit.errors import ConfigurationError, NotFoundError, ProviderUnavailable
from presence_audit.models.profile import GeoPoint, PlacePrediction

logger = logging.getLogger(__name__)

PLACES_API_URL = "https://maps.googleapis.com/maps/api/place"
PHOTO_MAX_SIZE = 1200

_OK_STATUSES = {"OK", "ZERO_RESULTS"}


class PlaceDataProvider(ABC):
    """Source of raw place records.

    Implementations return provider-shaped dicts; callers pass them through
    :func:`presence_audit.modules.local_presence.normalizer.normalize_place`.
    """

    @abstractmethod
    async def predict(self, query: str) -> list[PlacePrediction]:
        """Autocomplete suggestions for a free-text business query."""

    @abstractmethod
    async def details(self, place_id: str, fields: Sequence[str]) -> dict[str, Any]:
        """Raw details record restricted to *fields*."""

    @abstractmethod
    async def nearby_search(
        self,
        location: GeoPoint,
        radius_meters: int,
        category_hint: Optional[str] = None,
        keyword: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Raw nearby-search results ordered by prominence; empty when nothing matches."""


class GooglePlacesProvider(PlaceDataProvider):
    """Google Places web service client.

    Usage::

        provider = GooglePlacesProvider(api_key="your-key")
        predictions = await provider.predict("Acme Plumbing Denver, CO")
        raw = await provider.details(predictions[0].place_id, SUBJECT_FIELDS)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = PLACES_API_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key or os.getenv("GOOGLE_PLACES_API_KEY", "")
        if not self._api_key:
            raise ConfigurationError(
                "GOOGLE_PLACES_API_KEY is not set. Add it to your .env file."
            )
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def _get(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/{endpoint}/json"
        logger.debug("Places request %s params=%s", endpoint, params)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(url, params={**params, "key": self._api_key})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            logger.error("Places %s request failed: %s", endpoint, exc)
            raise ProviderUnavailable(f"Places {endpoint} request failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderUnavailable(f"Places {endpoint} returned invalid JSON") from exc

        status = payload.get("status", "")
        if status not in _OK_STATUSES:
            message = payload.get("error_message") or status or "unknown status"
            logger.error(
                "Places %s failed: status=%s, error_message=%s",
                endpoint, status, payload.get("error_message"),
            )
            if status == "NOT_FOUND":
                raise NotFoundError(f"Place not found: {message}")
            raise ProviderUnavailable(f"Places {endpoint} failed: {message}", status=status)
        return payload

    def _photo_url(self, photo: dict[str, Any]) -> str:
        ref = photo.get("photo_reference")
        if not ref:
            return ""
        return (
            f"{self._base_url}/photo?maxwidth={PHOTO_MAX_SIZE}"
            f"&photo_reference={ref}"
        )

    async def predict(self, query: str) -> list[PlacePrediction]:
        payload = await self._get(
            "autocomplete",
            {"input": query, "types": "establishment"},
        )
        return [
            PlacePrediction(description=p.get("description", ""), place_id=p["place_id"])
            for p in payload.get("predictions", [])
            if p.get("place_id")
        ]

    async def details(self, place_id: str, fields: Sequence[str]) -> dict[str, Any]:
        payload = await self._get(
            "details",
            {"place_id": place_id, "fields": ",".join(fields)},
        )
        result = payload.get("result")
        if not result:
            raise NotFoundError(f"No details returned for place {place_id}")
        # Photo URLs carry the reference only, never the key.
        for photo in result.get("photos") or []:
            if isinstance(photo, dict):
                photo.setdefault("preview_url", self._photo_url(photo))
        return result

    async def nearby_search(
        self,
        location: GeoPoint,
        radius_meters: int,
        category_hint: Optional[str] = None,
        keyword: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "location": f"{location.lat},{location.lng}",
            "radius": radius_meters,
        }
        if category_hint:
            params["type"] = category_hint
        if keyword:
            params["keyword"] = keyword
        payload = await self._get("nearbysearch", params)
        return list(payload.get("results", []))
