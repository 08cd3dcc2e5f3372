from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Coordinates:
    """Derece cinsinden enlem/boylam çifti."""
    latitude: float
    longitude: float


class Profile:
    """Kullanıcı profili; koordinatlar adresten türetilir ve boş olabilir."""

    def __init__(self, user_id: str, display_name: str | None = None, address: str | None = None,
                 latitude: float | None = None, longitude: float | None = None,
                 updated_at: str | None = None) -> None:
        self.user_id = user_id
        self.display_name = display_name or None
        self.address = address or None
        self.latitude = latitude
        self.longitude = longitude
        self.updated_at = updated_at

    @property
    def coordinates(self) -> Optional[Coordinates]:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(self.latitude, self.longitude)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Profile":
        return Profile(
            user_id=data["user_id"],
            display_name=data.get("display_name"),
            address=data.get("address"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            updated_at=data.get("updated_at"),
        )
