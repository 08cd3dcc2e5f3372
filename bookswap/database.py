import sqlite3
import os
import logging
from typing import Optional

from bookswap.config import settings

logger = logging.getLogger(__name__)

# Varsayılan veritabanı dosyası.
# Testler ve CLI, modül düzeyindeki bu değeri ya da depolara verilen db_file'ı geçersiz kılabilir.
DATABASE_FILE = settings.db_file


def get_db_connection(db_file: Optional[str] = None) -> sqlite3.Connection:
    """SQLite veritabanına bir bağlantı kurar (satırlar sqlite3.Row olarak döner)."""
    conn = sqlite3.connect(db_file or DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def create_tables(db_file: Optional[str] = None) -> None:
    """Veritabanında mevcut değilse gerekli tabloları oluşturur."""
    conn = get_db_connection(db_file)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS books (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                isbn TEXT,
                condition TEXT NOT NULL DEFAULT 'good'
                    CHECK(condition IN ('excellent', 'good', 'fair', 'poor')),
                description TEXT,
                genre TEXT,
                cover_url TEXT,
                available_for_swap INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            )
        """)

        # İstek listesi girdileri; öncelik 1 (düşük) ile 3 (yüksek) arasında
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS wishlists (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                title TEXT NOT NULL,
                author TEXT NOT NULL,
                isbn TEXT,
                genre TEXT,
                description TEXT,
                notes TEXT,
                priority INTEGER NOT NULL DEFAULT 1 CHECK(priority >= 1 AND priority <= 3),
                created_at TEXT NOT NULL
            )
        """)

        # Kullanıcı başına en fazla bir profil
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS profiles (
                user_id TEXT PRIMARY KEY,
                display_name TEXT,
                address TEXT,
                latitude REAL CHECK(latitude IS NULL OR (latitude >= -90 AND latitude <= 90)),
                longitude REAL CHECK(longitude IS NULL OR (longitude >= -180 AND longitude <= 180)),
                updated_at TEXT
            )
        """)

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_owner ON books(owner_id)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_books_available ON books(available_for_swap)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_wishlists_owner ON wishlists(owner_id)")
        conn.commit()
    finally:
        conn.close()


def initialize_database(db_file: Optional[str] = None) -> None:
    """Veritabanı dosyasının dizinini hazırlar ve tabloları oluşturur."""
    path = db_file or DATABASE_FILE
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    create_tables(path)
    logger.debug("Veritabanı hazır: %s", path)
