"""Kitap keşfi: başka kullanıcıların takasa açık kitaplarının sıralı listesi.

``DiscoveryService`` tek bir sıralama geçişinin ihtiyaç duyduğu her şeyi depolardan
toplar ve değişmez bir :class:`DiscoverySnapshot` döndürür. Sahiplerin istek
listeleri yalnızca istek listesiyle eşleşen adaylar için gerekir; eşleşen sahip
kimlikleriyle tek bir toplu sorguda getirilir.

``DiscoveryController`` tek bir keşif görünümünün yaşam döngüsünü yönetir. Her
yenileme bir nesil numarası alır ve yalnızca en yenisi yayımlanır; yavaş ve
eskimiş bir yenileme daha yeni bir sonucun üzerine yazamaz.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Tuple

from bookswap.book import CONDITIONS
from bookswap.errors import ExternalServiceError
from bookswap.library import Library
from bookswap.matching import Candidate, annotate_candidate, is_double_match, rank_candidates
from bookswap.profiles import ProfileStore
from bookswap.utils.validators import TextValidator
from bookswap.wishlist import Wishlist

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveryFilters:
    """Sıralanmış adaylara uygulanan görüntüleme filtreleri."""
    search: Optional[str] = None
    genre: Optional[str] = None
    condition: Optional[str] = None
    matches_only: bool = False
    max_distance_km: Optional[float] = None

    def __post_init__(self):
        if self.condition is not None and self.condition not in CONDITIONS:
            raise ValueError(f"Geçersiz durum: {self.condition}")
        if self.max_distance_km is not None and self.max_distance_km < 0:
            raise ValueError("Mesafe sınırı negatif olamaz.")

    def accepts(self, candidate: Candidate) -> bool:
        book = candidate.book
        if not TextValidator.matches_search(self.search, book.title, book.author, book.genre):
            return False
        if self.genre and book.genre != self.genre:
            return False
        if self.condition and book.condition != self.condition:
            return False
        if self.matches_only and not candidate.is_wishlist_match:
            return False
        if self.max_distance_km is not None:
            if candidate.distance_km is None or candidate.distance_km > self.max_distance_km:
                return False
        return True


@dataclass(frozen=True)
class DiscoverySnapshot:
    """Tek bir keşif geçişinin sonucu; oluşturulduktan sonra değişmez."""
    user_id: str
    candidates: Tuple[Candidate, ...]
    genres: Tuple[str, ...] = ()
    conditions: Tuple[str, ...] = ()
    total_available: int = 0
    filters: DiscoveryFilters = field(default_factory=DiscoveryFilters)
    generated_at: str = ""

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "candidates": [c.to_dict() for c in self.candidates],
            "genres": list(self.genres),
            "conditions": list(self.conditions),
            "total_available": self.total_available,
            "generated_at": self.generated_at,
        }


class DiscoveryService:
    """Kitap, istek listesi ve profil depolarından sıralı keşif görüntüleri üretir."""

    def __init__(self, library: Library, wishlist: Wishlist, profiles: ProfileStore,
                 match_mode: Optional[str] = None):
        self.library = library
        self.wishlist = wishlist
        self.profiles = profiles
        self.match_mode = match_mode

    def discover(self, user_id: str, filters: Optional[DiscoveryFilters] = None) -> DiscoverySnapshot:
        """``user_id`` için tek bir sıralama geçişi çalıştırır.

        Raises:
            ExternalServiceError: Herhangi bir depo okuması başarısız olursa; kısmi sonuç dönmez.
        """
        filters = filters or DiscoveryFilters()
        try:
            return self._discover(user_id, filters)
        except sqlite3.Error as e:
            logger.error("Keşif sorgusu başarısız: %s", e)
            raise ExternalServiceError("Takasa açık kitaplar yüklenemedi.") from e

    def _discover(self, user_id: str, filters: DiscoveryFilters) -> DiscoverySnapshot:
        books = self.library.list_available_books(exclude_owner_id=user_id)
        owner_ids = {book.owner_id for book in books}
        profiles = self.profiles.get_profiles(owner_ids | {user_id})
        requester = profiles.get(user_id)
        wishlist_titles = [entry.title for entry in self.wishlist.list_entries(user_id)]
        library_titles = self.library.list_titles(user_id)

        candidates = [
            annotate_candidate(book, profiles.get(book.owner_id), requester, wishlist_titles, self.match_mode)
            for book in books
        ]

        matched_owners = {c.book.owner_id for c in candidates if c.is_wishlist_match}
        if matched_owners and library_titles:
            owner_wishlists = self.wishlist.titles_for_owners(matched_owners)
            candidates = [
                replace(c, is_double_match=is_double_match(
                    library_titles, owner_wishlists.get(c.book.owner_id, []), self.match_mode))
                if c.is_wishlist_match else c
                for c in candidates
            ]

        ranked = rank_candidates(candidates)
        logger.debug("%s için %d aday sıralandı (%d eşleşme)", user_id, len(ranked), len(matched_owners))

        return DiscoverySnapshot(
            user_id=user_id,
            candidates=tuple(c for c in ranked if filters.accepts(c)),
            genres=tuple(sorted({b.genre for b in books if b.genre})),
            conditions=tuple(c for c in CONDITIONS if any(b.condition == c for b in books)),
            total_available=len(books),
            filters=filters,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )


class DiscoveryController:
    """Bir kullanıcının güncel keşif görünümünü yönetir."""

    def __init__(self, service: DiscoveryService, user_id: str):
        self.service = service
        self.user_id = user_id
        self._generation = 0
        self._snapshot: Optional[DiscoverySnapshot] = None

    @property
    def snapshot(self) -> Optional[DiscoverySnapshot]:
        return self._snapshot

    async def refresh(self, filters: Optional[DiscoveryFilters] = None) -> Optional[DiscoverySnapshot]:
        """Yeni bir görüntü getirir; daha yeni bir yenileme başladıysa None döner."""
        self._generation += 1
        generation = self._generation
        snapshot = await asyncio.to_thread(self.service.discover, self.user_id, filters)
        if generation != self._generation:
            logger.debug("Eski keşif sonucu atıldı (nesil %d < %d)", generation, self._generation)
            return None
        self._snapshot = snapshot
        return snapshot

    def close(self) -> None:
        # Devam eden yenilemelerin sonuçları artık yayımlanmaz
        self._generation += 1
        self._snapshot = None
