"""Eşleşme ve mesafe sıralaması.

Takasa açık kitaplar üç bilgiyle işaretlenir: sahibine olan mesafe (haversine,
km), istek listesiyle eşleşme ve karşılıklı (çift) eşleşme. Bu bilgiler tek bir
puanda birleşir ve aday listesi bu puana göre sıralanır. Buradaki işlevler saftır:
G/Ç yapmaz, girdileri değiştirmez.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional

from bookswap.book import Book
from bookswap.config import settings
from bookswap.profile import Profile
from bookswap.utils.validators import SwapValidator

EARTH_RADIUS_KM = 6371.0

DOUBLE_MATCH_SCORE = 1000
WISHLIST_MATCH_SCORE = 100

MATCH_MODES = ("token", "substring")

_TOKEN_RE = re.compile(r"\w+")


# ------------------------- Mesafe ------------------------- #
def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """İki nokta arasındaki büyük çember mesafesi (km)."""
    if not (SwapValidator.validate_coordinates(lat1, lon1) and SwapValidator.validate_coordinates(lat2, lon2)):
        raise ValueError("Enlem [-90, 90], boylam [-180, 180] aralığında olmalı.")

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    a = min(1.0, a)  # antipodlarda kayan nokta taşması
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(a: Optional[Profile], b: Optional[Profile]) -> Optional[float]:
    """Koordinatlardan biri eksikse None (bilinmiyor), asla 0 değil."""
    if a is None or b is None:
        return None
    coords_a, coords_b = a.coordinates, b.coordinates
    if coords_a is None or coords_b is None:
        return None
    return haversine_km(coords_a.latitude, coords_a.longitude, coords_b.latitude, coords_b.longitude)


# ------------------------- Başlık eşleştirme ------------------------- #
def _tokens(title: str) -> List[str]:
    return _TOKEN_RE.findall(title.casefold())


def titles_match(a: Optional[str], b: Optional[str], mode: Optional[str] = None) -> bool:
    """Büyük/küçük harf duyarsız, iki yönlü başlık eşleşmesi.

    'token' kipinde kısa başlığın kelime dizisi uzun başlıkta ardışık olarak
    geçmelidir ("Hobbit" ~ "The Hobbit", ama "IT" !~ "Fit for a King").
    'substring' kipinde biri diğerinin alt dizesi olması yeterlidir.
    """
    mode = mode or settings.title_match_mode
    if mode not in MATCH_MODES:
        raise ValueError(f"Bilinmeyen eşleştirme kipi: {mode}")
    if not a or not b or not a.strip() or not b.strip():
        return False

    if mode == "substring":
        left, right = a.strip().casefold(), b.strip().casefold()
        return left in right or right in left

    left_tokens, right_tokens = _tokens(a), _tokens(b)
    if not left_tokens or not right_tokens:
        return False
    shorter, longer = sorted((left_tokens, right_tokens), key=len)
    size = len(shorter)
    return any(longer[i:i + size] == shorter for i in range(len(longer) - size + 1))


def is_wishlist_match(title: str, wishlist_titles: Iterable[str], mode: Optional[str] = None) -> bool:
    return any(titles_match(title, wanted, mode) for wanted in wishlist_titles)


def is_double_match(own_library_titles: Iterable[str], owner_wishlist_titles: Iterable[str],
                    mode: Optional[str] = None) -> bool:
    """İsteyen kullanıcının sahip olduğu bir kitap, aday sahibinin istek listesinde mi?"""
    wanted = list(owner_wishlist_titles)
    return any(is_wishlist_match(title, wanted, mode) for title in own_library_titles)


# ------------------------- Puanlama ve sıralama ------------------------- #
def match_score(wishlist_match: bool, double_match: bool, distance_km: Optional[float] = None) -> float:
    """Eşleşme katmanı taban puanı, mesafe biliniyorsa km cinsinden düşülür."""
    if double_match:
        base = DOUBLE_MATCH_SCORE
    elif wishlist_match:
        base = WISHLIST_MATCH_SCORE
    else:
        base = 0
    if distance_km is None:
        return float(base)
    return base - distance_km


@dataclass(frozen=True)
class Candidate:
    """Sahibinin profiliyle birleştirilmiş ve işaretlenmiş takas adayı."""
    book: Book
    owner: Optional[Profile] = None
    distance_km: Optional[float] = None
    is_wishlist_match: bool = False
    is_double_match: bool = False
    match_score: float = 0.0

    def to_dict(self) -> dict:
        data = self.book.to_dict()
        data.update({
            "owner_display_name": self.owner.display_name if self.owner else None,
            "distance_km": round(self.distance_km, 1) if self.distance_km is not None else None,
            "is_wishlist_match": self.is_wishlist_match,
            "is_double_match": self.is_double_match,
            "match_score": self.match_score,
        })
        return data


def annotate_candidate(book: Book, owner: Optional[Profile], requester: Optional[Profile],
                       wishlist_titles: Iterable[str], mode: Optional[str] = None) -> Candidate:
    """Mesafe ve istek listesi eşleşmesini işaretler; çift eşleşme sonradan belirlenir."""
    return Candidate(
        book=book,
        owner=owner,
        distance_km=distance_between(requester, owner),
        is_wishlist_match=is_wishlist_match(book.title, wishlist_titles, mode),
    )


def _sort_key(candidate: Candidate):
    # Eşit puanda mesafesi bilinenler önce ve yakından uzağa; ikisi de bilinmiyorsa sıra korunur
    return (
        -candidate.match_score,
        candidate.distance_km is None,
        candidate.distance_km if candidate.distance_km is not None else 0.0,
    )


def rank_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    """Puanları hesaplar ve azalan puana göre kararlı biçimde sıralar."""
    scored = [
        replace(c, match_score=match_score(c.is_wishlist_match, c.is_double_match, c.distance_km))
        for c in candidates
    ]
    return sorted(scored, key=_sort_key)
