import logging
from typing import Any, Dict, Iterable, List, Optional

from bookswap import database
from bookswap.database import get_db_connection, initialize_database
from bookswap.errors import OwnershipError
from bookswap.library import new_id, utc_now
from bookswap.utils.validators import ISBNValidator, TextValidator, SwapValidator
from bookswap.wishlist_entry import WishlistEntry

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = "id, owner_id, title, author, isbn, genre, description, notes, priority, created_at"
_UPDATABLE_FIELDS = ("title", "author", "isbn", "genre", "description", "notes", "priority")


class Wishlist:
    """Kullanıcıların istek listelerini yönetir."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file or database.DATABASE_FILE
        initialize_database(self.db_file)

    def add_entry(self, entry: WishlistEntry) -> WishlistEntry:
        self._validate(entry)
        entry.id = entry.id or new_id()
        entry.created_at = utc_now()

        conn = get_db_connection(self.db_file)
        try:
            conn.execute(f"""
                INSERT INTO wishlists ({_ENTRY_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                entry.id, entry.owner_id, entry.title, entry.author, entry.isbn, entry.genre,
                entry.description, entry.notes, entry.priority, entry.created_at,
            ))
            conn.commit()
        finally:
            conn.close()
        logger.info("İstek listesine eklendi: %s (%s)", entry.title, entry.owner_id)
        return entry

    def get_entry(self, entry_id: str) -> Optional[WishlistEntry]:
        conn = get_db_connection(self.db_file)
        try:
            row = conn.execute(f"SELECT {_ENTRY_COLUMNS} FROM wishlists WHERE id = ?", (entry_id,)).fetchone()
            return WishlistEntry.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def list_entries(self, owner_id: str, search: Optional[str] = None) -> List[WishlistEntry]:
        """Önce yüksek öncelik, aynı öncelikte en yeni önce; search başlık, yazar veya türde aranır."""
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute(
                f"SELECT {_ENTRY_COLUMNS} FROM wishlists WHERE owner_id = ? "
                "ORDER BY priority DESC, created_at DESC, rowid DESC",
                (owner_id,),
            ).fetchall()
        finally:
            conn.close()
        entries = [WishlistEntry.from_dict(dict(row)) for row in rows]
        return [e for e in entries if TextValidator.matches_search(search, e.title, e.author, e.genre)]

    def titles_for_owners(self, owner_ids: Iterable[str]) -> Dict[str, List[str]]:
        """Birden çok kullanıcının istek listesi başlıklarını tek sorguda getirir."""
        ids = sorted(set(owner_ids))
        result: Dict[str, List[str]] = {owner_id: [] for owner_id in ids}
        if not ids:
            return result

        placeholders = ", ".join("?" for _ in ids)
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute(
                f"SELECT owner_id, title FROM wishlists WHERE owner_id IN ({placeholders})",
                ids,
            ).fetchall()
        finally:
            conn.close()
        for row in rows:
            result[row["owner_id"]].append(row["title"])
        return result

    def update_entry(self, entry_id: str, caller_id: str, **changes: Any) -> WishlistEntry:
        entry = self.get_entry(entry_id)
        if entry is None:
            raise LookupError("İstek listesi öğesi bulunamadı.")
        if entry.owner_id != caller_id:
            raise OwnershipError("Bu istek listesi öğesi size ait değil.")
        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Güncellenemeyen alanlar: {', '.join(sorted(unknown))}")

        data = entry.to_dict()
        data.update(changes)
        updated = WishlistEntry.from_dict(data)
        self._validate(updated)

        conn = get_db_connection(self.db_file)
        try:
            conn.execute("""
                UPDATE wishlists SET title = ?, author = ?, isbn = ?, genre = ?, description = ?,
                                     notes = ?, priority = ?
                WHERE id = ?
            """, (
                updated.title, updated.author, updated.isbn, updated.genre, updated.description,
                updated.notes, updated.priority, entry_id,
            ))
            conn.commit()
        finally:
            conn.close()
        return updated

    def remove_entry(self, entry_id: str, caller_id: str) -> bool:
        entry = self.get_entry(entry_id)
        if entry is None:
            return False
        if entry.owner_id != caller_id:
            raise OwnershipError("Bu istek listesi öğesi size ait değil.")
        conn = get_db_connection(self.db_file)
        try:
            conn.execute("DELETE FROM wishlists WHERE id = ? AND owner_id = ?", (entry_id, caller_id))
            conn.commit()
        finally:
            conn.close()
        return True

    @staticmethod
    def _validate(entry: WishlistEntry) -> None:
        if not TextValidator.validate_title(entry.title):
            raise ValueError("Başlık gerekli.")
        if not TextValidator.validate_author(entry.author):
            raise ValueError("Geçerli bir yazar gerekli.")
        if not entry.owner_id:
            raise ValueError("İstek listesi öğesinin bir sahibi olmalı.")
        if not SwapValidator.validate_priority(entry.priority):
            raise ValueError("Öncelik 1, 2 veya 3 olmalı.")
        if entry.isbn:
            if not ISBNValidator.is_valid_isbn(entry.isbn):
                raise ValueError("Geçersiz ISBN formatı.")
            entry.isbn = ISBNValidator.normalize_isbn(entry.isbn)
