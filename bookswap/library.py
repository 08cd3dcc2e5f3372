import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

from bookswap import database
from bookswap.book import Book
from bookswap.database import get_db_connection, initialize_database
from bookswap.errors import OwnershipError
from bookswap.utils.validators import ISBNValidator, TextValidator, SwapValidator

logger = logging.getLogger(__name__)

_BOOK_COLUMNS = (
    "id, owner_id, title, author, isbn, condition, description, genre, "
    "cover_url, available_for_swap, created_at"
)
_UPDATABLE_FIELDS = (
    "title", "author", "isbn", "condition", "description", "genre",
    "cover_url", "available_for_swap",
)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


class Library:
    """Kullanıcıların kitap koleksiyonlarını ve veri kalıcılığını yönetir."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file or database.DATABASE_FILE
        initialize_database(self.db_file)

    # ------------------------- Çekirdek işlemler ------------------------- #
    def add_book(self, book: Book) -> Book:
        """Kitabı sahibinin kütüphanesine ekler; id ve created_at burada atanır."""
        self._validate(book)
        book.id = book.id or new_id()
        book.created_at = utc_now()

        conn = get_db_connection(self.db_file)
        try:
            conn.execute(f"""
                INSERT INTO books ({_BOOK_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                book.id, book.owner_id, book.title, book.author, book.isbn,
                book.condition, book.description, book.genre, book.cover_url,
                int(book.available_for_swap), book.created_at,
            ))
            conn.commit()
        finally:
            conn.close()
        logger.info("Kitap eklendi: %s (%s)", book.title, book.owner_id)
        return book

    def get_book(self, book_id: str) -> Optional[Book]:
        conn = get_db_connection(self.db_file)
        try:
            row = conn.execute(f"SELECT {_BOOK_COLUMNS} FROM books WHERE id = ?", (book_id,)).fetchone()
            return Book.from_dict(dict(row)) if row else None
        finally:
            conn.close()

    def list_books(self, owner_id: str, search: Optional[str] = None) -> List[Book]:
        """Kullanıcının kendi kütüphanesi, en yeni önce.

        search verilirse başlık, yazar veya türde geçenler döner.
        """
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute(
                f"SELECT {_BOOK_COLUMNS} FROM books WHERE owner_id = ? ORDER BY created_at DESC, rowid DESC",
                (owner_id,),
            ).fetchall()
        finally:
            conn.close()
        books = [Book.from_dict(dict(row)) for row in rows]
        return [b for b in books if TextValidator.matches_search(search, b.title, b.author, b.genre)]

    def list_available_books(self, exclude_owner_id: str) -> List[Book]:
        """Başka kullanıcıların takasa açık kitapları, en yeni önce."""
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute(
                f"SELECT {_BOOK_COLUMNS} FROM books "
                "WHERE available_for_swap = 1 AND owner_id != ? "
                "ORDER BY created_at DESC, rowid DESC",
                (exclude_owner_id,),
            ).fetchall()
            return [Book.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def list_titles(self, owner_id: str) -> List[str]:
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute("SELECT title FROM books WHERE owner_id = ?", (owner_id,)).fetchall()
            return [row["title"] for row in rows]
        finally:
            conn.close()

    def update_book(self, book_id: str, caller_id: str, **changes: Any) -> Book:
        """Yalnızca verilen alanları günceller. Kitap yoksa LookupError, sahibi değilse OwnershipError."""
        book = self._get_owned(book_id, caller_id)
        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Güncellenemeyen alanlar: {', '.join(sorted(unknown))}")

        data = book.to_dict()
        data.update(changes)
        updated = Book.from_dict(data)
        self._validate(updated)

        conn = get_db_connection(self.db_file)
        try:
            conn.execute("""
                UPDATE books SET title = ?, author = ?, isbn = ?, condition = ?, description = ?,
                                 genre = ?, cover_url = ?, available_for_swap = ?
                WHERE id = ?
            """, (
                updated.title, updated.author, updated.isbn, updated.condition, updated.description,
                updated.genre, updated.cover_url, int(updated.available_for_swap), book_id,
            ))
            conn.commit()
        finally:
            conn.close()
        return updated

    def remove_book(self, book_id: str, caller_id: str) -> bool:
        """Kitabı siler; bulunamazsa False döner."""
        if self.get_book(book_id) is None:
            return False
        self._get_owned(book_id, caller_id)
        conn = get_db_connection(self.db_file)
        try:
            conn.execute("DELETE FROM books WHERE id = ? AND owner_id = ?", (book_id, caller_id))
            conn.commit()
        finally:
            conn.close()
        logger.info("Kitap silindi: %s", book_id)
        return True

    def get_statistics(self, owner_id: str) -> Dict[str, Any]:
        conn = get_db_connection(self.db_file)
        try:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT COUNT(*), COALESCE(SUM(available_for_swap), 0) FROM books WHERE owner_id = ?",
                (owner_id,),
            )
            total_books, available = cursor.fetchone()

            cursor.execute(
                "SELECT COUNT(DISTINCT genre) FROM books WHERE owner_id = ? AND genre IS NOT NULL",
                (owner_id,),
            )
            unique_genres = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(*) FROM wishlists WHERE owner_id = ?", (owner_id,))
            wishlist_size = cursor.fetchone()[0]

            return {
                "total_books": total_books,
                "available_for_swap": available,
                "unique_genres": unique_genres,
                "wishlist_size": wishlist_size,
            }
        finally:
            conn.close()

    # ------------------------- Yardımcılar ------------------------- #
    def _get_owned(self, book_id: str, caller_id: str) -> Book:
        book = self.get_book(book_id)
        if book is None:
            raise LookupError("Kitap bulunamadı.")
        if book.owner_id != caller_id:
            raise OwnershipError("Bu kitap size ait değil.")
        return book

    @staticmethod
    def _validate(book: Book) -> None:
        if not TextValidator.validate_title(book.title):
            raise ValueError("Başlık gerekli.")
        if not TextValidator.validate_author(book.author):
            raise ValueError("Geçerli bir yazar gerekli.")
        if not book.owner_id:
            raise ValueError("Kitabın bir sahibi olmalı.")
        if not SwapValidator.validate_condition(book.condition):
            raise ValueError(f"Geçersiz durum: {book.condition}")
        if book.isbn:
            if not ISBNValidator.is_valid_isbn(book.isbn):
                raise ValueError("Geçersiz ISBN formatı.")
            book.isbn = ISBNValidator.normalize_isbn(book.isbn)
        if book.cover_url and not TextValidator.validate_url(book.cover_url):
            raise ValueError("Kapak adresi geçerli bir http(s) URL olmalı.")
