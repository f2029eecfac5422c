import logging
import time
from typing import Optional, Dict, Any

import httpx
from sqlalchemy.orm import Session

from immomatch.config import get_settings
from immomatch.models import Property
from immomatch.services.address import normalize_address
from immomatch.services.property_matcher import extract_coordinates

logger = logging.getLogger(__name__)


class GeocodingError(RuntimeError):
    """Ошибка обращения к геокодеру (сеть, HTTP статус, некорректный ответ)"""


class GeocodingService:
    """
    Геокодирование адресов через Nominatim-совместимый сервис.
    Нужен, чтобы у объявлений без координат появился location для метчинга по зонам.
    """

    def __init__(self, client: Optional[httpx.Client] = None, request_delay: Optional[float] = None):
        self.settings = get_settings()
        self.request_delay = self.settings.geocoding_request_delay if request_delay is None else request_delay
        self.headers = {
            "User-Agent": self.settings.geocoding_user_agent,
            "Accept": "application/json",
            "Accept-Language": "it,en;q=0.8",
        }
        self._owns_client = client is None
        self.client = client or httpx.Client(
            base_url=self.settings.geocoding_base_url,
            headers=self.headers,
            timeout=self.settings.geocoding_timeout,
            follow_redirects=True,
        )
        self._cache: Dict[str, Optional[Dict[str, float]]] = {}

    def close(self):
        if self._owns_client:
            self.client.close()

    def geocode(self, address: str, city: Optional[str] = None) -> Optional[Dict[str, float]]:
        """
        Возвращает {"lat": ..., "lng": ...} или None, если адрес не найден.

        Raises:
            GeocodingError: при сетевой ошибке или ошибочном HTTP статусе
        """
        if not address or not address.strip():
            return None
        query = f"{address}, {city}" if city else address
        cache_key = normalize_address(query, city_names=[])
        if cache_key in self._cache:
            return self._cache[cache_key]

        params = {
            "q": query,
            "format": "json",
            "limit": 1,
            "countrycodes": self.settings.geocoding_country_codes,
        }
        try:
            response = self.client.get("/search", params=params, headers=self.headers)
            if response.status_code == 429:
                logger.warning(f"Geocoder rate limited (429) for '{query}'")
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise GeocodingError(f"Geocoder HTTP error for '{query}': {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise GeocodingError(f"Geocoder request failed for '{query}': {e}") from e
        except ValueError as e:
            raise GeocodingError(f"Geocoder returned invalid JSON for '{query}'") from e

        location = None
        if isinstance(payload, list) and payload:
            first = payload[0]
            coordinates = extract_coordinates({"lat": first.get("lat"), "lng": first.get("lon")})
            if coordinates:
                location = {"lat": coordinates[0], "lng": coordinates[1]}

        if location is None:
            logger.info(f"Address not found by geocoder: '{query}'")
        else:
            logger.debug(f"Geocoded '{query}' -> {location}")
        self._cache[cache_key] = location
        return location

    def geocode_missing_locations(self, db: Session, limit: int = 50) -> Dict[str, Any]:
        """Проставляет location объявлениям без координат"""
        results = {"processed": 0, "geocoded": 0, "failed": 0}

        pending = (
            db.query(Property)
            .filter(Property.address.isnot(None))
            .filter((Property.geocode_status == None) | (Property.geocode_status == "pending"))  # noqa: E711
            .order_by(Property.id)
            .all()
        )
        # JSON null и SQL NULL в location равнозначны, поэтому фильтр в Python
        properties = [p for p in pending if extract_coordinates(p.location) is None][:limit]

        for index, prop in enumerate(properties):
            if index > 0 and self.request_delay > 0:
                time.sleep(self.request_delay)
            results["processed"] += 1
            try:
                location = self.geocode(prop.address, prop.city)
            except GeocodingError as e:
                logger.error(f"Geocoding failed for property {prop.id}: {e}")
                results["failed"] += 1
                continue

            if location:
                prop.location = location
                prop.geocode_status = "success"
                results["geocoded"] += 1
            else:
                prop.geocode_status = "failed"
                results["failed"] += 1

        db.commit()
        logger.info(f"Geocoding completed: {results}")
        return results
