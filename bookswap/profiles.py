"""Adres koordinatlarına çevrilerek tutulan kullanıcı profilleri.

Profil ``user_id`` üzerinden eklenir veya güncellenir. Koordinatlar doğrudan
girilmez; adresten coğrafi kodlama servisiyle hesaplanır ve yalnızca adres
değiştiğinde (ya da henüz koordinat yoksa) yeniden hesaplanır. Coğrafi kodlama
başarısız olursa güncellemenin geri kalanı yine kaydedilir, önceki adres ve
koordinatlar korunur ve hata :class:`ProfileUpdateResult` içinde döner.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from bookswap import database
from bookswap.config import settings
from bookswap.database import get_db_connection, initialize_database
from bookswap.errors import GeocodingError
from bookswap.library import utc_now
from bookswap.profile import Profile
from bookswap.services.geocoding_service import GeocodingService

logger = logging.getLogger(__name__)

_PROFILE_COLUMNS = "user_id, display_name, address, latitude, longitude, updated_at"


@dataclass
class ProfileUpdateResult:
    """Profil kaydetme işleminin sonucu."""
    profile: Profile
    geocoding_error: Optional[str] = None

    @property
    def coordinates_updated(self) -> bool:
        return self.geocoding_error is None


class ProfileStore:
    """Kullanıcı profillerini okur ve kaydeder."""

    def __init__(self, db_file: Optional[str] = None, geocoder: Optional[GeocodingService] = None):
        self.db_file = db_file or database.DATABASE_FILE
        self._geocoder = geocoder
        initialize_database(self.db_file)

    @property
    def geocoder(self) -> GeocodingService:
        if self._geocoder is None:
            self._geocoder = GeocodingService()
        return self._geocoder

    def get_profile(self, user_id: str) -> Optional[Profile]:
        conn = get_db_connection(self.db_file)
        try:
            row = conn.execute(
                f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
            return Profile.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def get_profiles(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
        """Birden çok kullanıcının profilini tek sorguda getirir (kullanıcı kimliğine göre)."""
        ids = sorted(set(user_ids))
        if not ids:
            return {}
        placeholders = ", ".join("?" for _ in ids)
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute(
                f"SELECT {_PROFILE_COLUMNS} FROM profiles WHERE user_id IN ({placeholders})", ids
            ).fetchall()
        finally:
            conn.close()
        return {row["user_id"]: Profile.from_dict(dict(row)) for row in rows}

    def update_profile(self, user_id: str, display_name: Optional[str] = None,
                       address: Optional[str] = None) -> ProfileUpdateResult:
        """Çağıranın profilini kaydeder; adres değiştiyse koordinatları yeniden hesaplar.

        Args:
            user_id: Profilin sahibi (kimliği doğrulanmış çağıran)
            display_name: Yeni görünen ad; None verilirse mevcut ad korunur, boş metin siler
            address: Yeni serbest metin adres; None verilirse mevcut adres ve koordinatlar
                korunur, boş metin adresi ve koordinatları siler

        Returns:
            ProfileUpdateResult: Kaydedilen profil ve varsa coğrafi kodlama hatası
        """
        if not user_id:
            raise ValueError("Kullanıcı kimliği gerekli.")

        existing = self.get_profile(user_id)
        if display_name is None:
            display_name = existing.display_name if existing else None
        else:
            display_name = display_name.strip() or None

        latitude = existing.latitude if existing else None
        longitude = existing.longitude if existing else None
        geocoding_error = None

        if address is None:
            # Adres verilmedi: mevcut adres ve koordinatlar olduğu gibi kalır
            new_address = existing.address if existing else None
        else:
            new_address = " ".join(address.split()) or None
            if new_address is None:
                latitude = longitude = None
            elif existing is None or existing.address != new_address or existing.coordinates is None:
                if settings.enable_geocoding:
                    coords, geocoding_error = self._resolve(new_address)
                    if coords is None:
                        # Koordinat güncellemesi reddedildi: önceki adres ve koordinatlar korunur
                        new_address = existing.address if existing else None
                    else:
                        latitude, longitude = coords.latitude, coords.longitude
                else:
                    latitude = longitude = None

        profile = Profile(
            user_id=user_id,
            display_name=display_name,
            address=new_address,
            latitude=latitude,
            longitude=longitude,
            updated_at=utc_now(),
        )

        conn = get_db_connection(self.db_file)
        try:
            conn.execute(f"""
                INSERT INTO profiles ({_PROFILE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    display_name = excluded.display_name,
                    address = excluded.address,
                    latitude = excluded.latitude,
                    longitude = excluded.longitude,
                    updated_at = excluded.updated_at
            """, (
                profile.user_id, profile.display_name, profile.address,
                profile.latitude, profile.longitude, profile.updated_at,
            ))
            conn.commit()
        finally:
            conn.close()

        return ProfileUpdateResult(profile=profile, geocoding_error=geocoding_error)

    def set_coordinates(self, user_id: str, display_name: Optional[str], address: Optional[str],
                        latitude: float, longitude: float) -> Profile:
        """Bilinen koordinatları coğrafi kodlama yapmadan kaydeder (demo verisi)."""
        profile = Profile(user_id, display_name, address, latitude, longitude, utc_now())
        conn = get_db_connection(self.db_file)
        try:
            conn.execute(f"""
                INSERT OR REPLACE INTO profiles ({_PROFILE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)
            """, (
                profile.user_id, profile.display_name, profile.address,
                profile.latitude, profile.longitude, profile.updated_at,
            ))
            conn.commit()
        finally:
            conn.close()
        return profile

    def _resolve(self, address: str):
        try:
            coords = self.geocoder.geocode(address)
        except GeocodingError as e:
            logger.warning("Coğrafi kodlama başarısız (%s): %s", address, e)
            return None, str(e)
        if coords is None:
            return None, "Adres için koordinat bulunamadı. Lütfen adresi kontrol edip tekrar deneyin."
        return coords, None
