import logging
from typing import Optional

import httpx

from bookswap.cache_manager import CacheManager, cache_manager
from bookswap.config import settings
from bookswap.errors import GeocodingError
from bookswap.profile import Coordinates
from bookswap.services.http_client import HTTPClient, get_http_client
from bookswap.utils.validators import SwapValidator

logger = logging.getLogger(__name__)


class GeocodingService:
    """Serbest metin adresleri OpenStreetMap Nominatim ile koordinatlara çevirir."""

    def __init__(self, http_client: Optional[HTTPClient] = None, cache: Optional[CacheManager] = None,
                 base_url: Optional[str] = None):
        self._http = http_client
        self.cache = cache or cache_manager
        self.base_url = base_url or settings.geocoding_url
        self.cache_ttl = settings.geocode_cache_ttl

    @property
    def http(self) -> HTTPClient:
        """HTTP istemcisini tembel olarak yükle."""
        if self._http is None:
            self._http = get_http_client()
        return self._http

    def geocode(self, address: str) -> Optional[Coordinates]:
        """Adresi çözümler; bulunamazsa None döner.

        Raises:
            GeocodingError: Servis ulaşılamaz olduğunda veya anlamsız yanıt verdiğinde.
        """
        normalized = " ".join(address.split()).lower()
        if not normalized:
            return None

        cache_key = f"geocode:{normalized}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return Coordinates(cached["latitude"], cached["longitude"])

        params = {"format": "json", "q": address.strip(), "limit": 1}
        try:
            response = self.http.get_with_retry(self.base_url, params=params)
        except httpx.RequestError as e:
            logger.warning(f"Coğrafi kodlama servisine ulaşılamadı: {e}")
            raise GeocodingError("Coğrafi kodlama servisine ulaşılamadı.") from e

        if response.status_code != 200:
            logger.warning(f"Coğrafi kodlama hatası: HTTP {response.status_code}")
            raise GeocodingError(f"Coğrafi kodlama servisi hata döndürdü (HTTP {response.status_code}).")

        try:
            results = response.json()
        except ValueError as e:
            raise GeocodingError("Coğrafi kodlama yanıtı çözümlenemedi.") from e

        if not results:
            logger.info("Adres çözümlenemedi: %s", address)
            return None

        try:
            coords = Coordinates(float(results[0]["lat"]), float(results[0]["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise GeocodingError("Coğrafi kodlama yanıtı beklenen biçimde değil.") from e

        if not SwapValidator.validate_coordinates(coords.latitude, coords.longitude):
            raise GeocodingError("Coğrafi kodlama geçersiz koordinat döndürdü.")

        self.cache.set(cache_key, {"latitude": coords.latitude, "longitude": coords.longitude}, self.cache_ttl)
        return coords
