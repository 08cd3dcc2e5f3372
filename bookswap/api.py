import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Literal, Optional

from fastapi import FastAPI, HTTPException, Query, Depends, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from bookswap.book import Book
from bookswap.cache_manager import cache_manager
from bookswap.config import settings
from bookswap.database import get_db_connection
from bookswap.discovery import DiscoveryFilters, DiscoveryService
from bookswap.errors import ExternalServiceError, OwnershipError
from bookswap.library import Library
from bookswap.profiles import ProfileStore
from bookswap.services.http_client import cleanup_http_client
from bookswap.wishlist import Wishlist
from bookswap.wishlist_entry import WishlistEntry

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

library = Library()
wishlist = Wishlist(library.db_file)
profiles = ProfileStore(library.db_file)
discovery = DiscoveryService(library, wishlist, profiles)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("%s %s başlatıldı (veritabanı: %s)", settings.app_name, settings.app_version, library.db_file)
    try:
        yield
    finally:
        # Kapanışta HTTP istemcisini kapat
        cleanup_http_client()


app = FastAPI(title=f"{settings.app_name} API", version=settings.app_version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Güvenlik ---
# Kimlik doğrulama dış platformdadır; doğrulanmış kullanıcı kimliği X-User-Id ile gelir.
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)
user_id_header = APIKeyHeader(name="X-User-Id", auto_error=False)


def get_api_key(api_key: Optional[str] = Security(api_key_header)):
    """API anahtarını doğrulamak için bağımlılık."""
    if api_key == settings.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Kimlik bilgileri doğrulanamadı")


def get_current_user(user_id: Optional[str] = Security(user_id_header)) -> str:
    if not user_id or not user_id.strip():
        raise HTTPException(status_code=401, detail="Kullanıcı kimliği gerekli (X-User-Id).")
    return user_id.strip()


# --- Modeller ---
Condition = Literal["excellent", "good", "fair", "poor"]


class BookModel(BaseModel):
    id: str
    title: str
    author: str
    isbn: str | None = None
    condition: Condition
    description: str | None = None
    genre: str | None = None
    cover_url: str | None = None
    available_for_swap: bool
    owner_id: str
    created_at: str | None = None


class BookCreateModel(BaseModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    isbn: str | None = None
    condition: Condition = "good"
    description: str | None = None
    genre: str | None = None
    cover_url: str | None = None
    available_for_swap: bool = True


class UpdateBookModel(BaseModel):
    title: str | None = None
    author: str | None = None
    isbn: str | None = None
    condition: Condition | None = None
    description: str | None = None
    genre: str | None = None
    cover_url: str | None = None
    available_for_swap: bool | None = None


class StatsModel(BaseModel):
    total_books: int
    available_for_swap: int
    unique_genres: int
    wishlist_size: int


class WishlistModel(BaseModel):
    id: str
    title: str
    author: str
    isbn: str | None = None
    genre: str | None = None
    description: str | None = None
    notes: str | None = None
    priority: int
    owner_id: str
    created_at: str | None = None


class WishlistCreateModel(BaseModel):
    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    isbn: str | None = None
    genre: str | None = None
    description: str | None = None
    notes: str | None = None
    priority: int = Field(1, ge=1, le=3)


class UpdateWishlistModel(BaseModel):
    title: str | None = None
    author: str | None = None
    isbn: str | None = None
    genre: str | None = None
    description: str | None = None
    notes: str | None = None
    priority: int | None = Field(None, ge=1, le=3)


class ProfileModel(BaseModel):
    user_id: str
    display_name: str | None = None
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    updated_at: str | None = None


class ProfileUpdateModel(BaseModel):
    display_name: str | None = None
    address: str | None = None


class ProfileUpdateResponse(BaseModel):
    profile: ProfileModel
    geocoding_error: str | None = None


class CandidateModel(BookModel):
    owner_display_name: str | None = None
    distance_km: float | None = None
    is_wishlist_match: bool
    is_double_match: bool
    match_score: float


class DiscoveryResponse(BaseModel):
    user_id: str
    candidates: List[CandidateModel]
    genres: List[str]
    conditions: List[str]
    total_available: int
    generated_at: str


# Boş değerle temizlenemeyen alanlar
_REQUIRED_BOOK_FIELDS = ("title", "author", "condition", "available_for_swap")
_REQUIRED_WISHLIST_FIELDS = ("title", "author", "priority")


def _changes(update: BaseModel, required: tuple) -> dict:
    changes = update.model_dump(exclude_unset=True)
    for name in required:
        if name in changes and changes[name] is None:
            del changes[name]
    if not changes:
        raise HTTPException(status_code=400, detail="Güncellenecek en az bir alan sağlayın.")
    return changes


# --- Sağlık Kontrolü ---
@app.get("/health")
def health():
    """Hafif sağlık uç noktası; hızlı bir veritabanı bağlantı denemesi yapar."""
    db_ok = True
    try:
        conn = get_db_connection(library.db_file)
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
    except Exception as e:
        logger.warning(f"Veritabanı sağlık kontrolü başarısız: {e}")
        db_ok = False
    return {
        "status": "healthy" if db_ok else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "db": db_ok,
        "version": settings.app_version,
        "services": {"geocoding": settings.enable_geocoding},
        "cache": cache_manager.get_stats(),
    }


# --- Kütüphane ---
@app.get("/books", response_model=List[BookModel])
def get_books(
    user_id: str = Depends(get_current_user),
    search: Optional[str] = Query(None, description="Başlık, yazar veya türde ara"),
):
    """Kullanıcının kendi kütüphanesi, en yeni önce."""
    return [BookModel(**book.to_dict()) for book in library.list_books(user_id, search=search)]


@app.post("/books", response_model=BookModel, status_code=201, dependencies=[Depends(get_api_key)])
def add_book(payload: BookCreateModel, user_id: str = Depends(get_current_user)):
    """Kullanıcının kütüphanesine yeni bir kitap ekle."""
    try:
        book = library.add_book(Book(owner_id=user_id, **payload.model_dump()))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BookModel(**book.to_dict())


@app.get("/books/{book_id}", response_model=BookModel)
def get_book(book_id: str, user_id: str = Depends(get_current_user)):
    book = library.get_book(book_id)
    # Başkasının takasa kapalı kitabı görünmez
    if not book or (book.owner_id != user_id and not book.available_for_swap):
        raise HTTPException(status_code=404, detail="Kitap bulunamadı.")
    return BookModel(**book.to_dict())


@app.put("/books/{book_id}", response_model=BookModel, dependencies=[Depends(get_api_key)])
def update_book(book_id: str, update: UpdateBookModel, user_id: str = Depends(get_current_user)):
    """Yalnızca sahibi kitabı güncelleyebilir."""
    changes = _changes(update, _REQUIRED_BOOK_FIELDS)
    try:
        book = library.update_book(book_id, user_id, **changes)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return BookModel(**book.to_dict())


@app.delete("/books/{book_id}", dependencies=[Depends(get_api_key)])
def delete_book(book_id: str, user_id: str = Depends(get_current_user)):
    try:
        removed = library.remove_book(book_id, user_id)
    except OwnershipError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail="Kitap bulunamadı.")
    return {"message": "Kitap kaldırıldı."}


@app.get("/stats", response_model=StatsModel)
def get_stats(user_id: str = Depends(get_current_user)):
    return StatsModel(**library.get_statistics(user_id))


# --- İstek Listesi ---
@app.get("/wishlist", response_model=List[WishlistModel])
def get_wishlist(
    user_id: str = Depends(get_current_user),
    search: Optional[str] = Query(None, description="Başlık, yazar veya türde ara"),
):
    """Önce yüksek öncelikli öğeler."""
    return [WishlistModel(**entry.to_dict()) for entry in wishlist.list_entries(user_id, search=search)]


@app.post("/wishlist", response_model=WishlistModel, status_code=201, dependencies=[Depends(get_api_key)])
def add_wishlist_entry(payload: WishlistCreateModel, user_id: str = Depends(get_current_user)):
    try:
        entry = wishlist.add_entry(WishlistEntry(owner_id=user_id, **payload.model_dump()))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return WishlistModel(**entry.to_dict())


@app.put("/wishlist/{entry_id}", response_model=WishlistModel, dependencies=[Depends(get_api_key)])
def update_wishlist_entry(entry_id: str, update: UpdateWishlistModel, user_id: str = Depends(get_current_user)):
    changes = _changes(update, _REQUIRED_WISHLIST_FIELDS)
    try:
        entry = wishlist.update_entry(entry_id, user_id, **changes)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except OwnershipError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return WishlistModel(**entry.to_dict())


@app.delete("/wishlist/{entry_id}", dependencies=[Depends(get_api_key)])
def delete_wishlist_entry(entry_id: str, user_id: str = Depends(get_current_user)):
    try:
        removed = wishlist.remove_entry(entry_id, user_id)
    except OwnershipError as e:
        raise HTTPException(status_code=403, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail="İstek listesi öğesi bulunamadı.")
    return {"message": "İstek listesi öğesi kaldırıldı."}


# --- Profil ---
@app.get("/profile", response_model=ProfileModel)
def get_profile(user_id: str = Depends(get_current_user)):
    profile = profiles.get_profile(user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="Profil bulunamadı.")
    return ProfileModel(**profile.to_dict())


@app.put("/profile", response_model=ProfileUpdateResponse, dependencies=[Depends(get_api_key)])
def update_profile(payload: ProfileUpdateModel, user_id: str = Depends(get_current_user)):
    """Profili kaydet; adres değiştiyse koordinatlar yeniden hesaplanır.

    Gönderilmeyen alanlar korunur; boş metin alanı temizler. Adres çözümlenemezse
    profil yine kaydedilir, ancak koordinatlar güncellenmez
    ve hata geocoding_error alanında döner.
    """
    result = profiles.update_profile(user_id, **payload.model_dump(exclude_unset=True))
    return ProfileUpdateResponse(
        profile=ProfileModel(**result.profile.to_dict()),
        geocoding_error=result.geocoding_error,
    )


# --- Keşif ---
@app.get("/discover", response_model=DiscoveryResponse)
def discover_books(
    user_id: str = Depends(get_current_user),
    search: Optional[str] = Query(None, description="Başlık, yazar veya türde ara"),
    genre: Optional[str] = Query(None),
    condition: Optional[Condition] = Query(None),
    matches_only: bool = Query(False, description="Yalnızca istek listesi eşleşmeleri"),
    max_distance_km: Optional[float] = Query(None, ge=0),
):
    """Takasa açık kitapları eşleşme ve mesafeye göre sıralı döndür."""
    filters = DiscoveryFilters(
        search=search,
        genre=genre,
        condition=condition,
        matches_only=matches_only,
        max_distance_km=max_distance_km,
    )
    try:
        snapshot = discovery.discover(user_id, filters)
    except ExternalServiceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return DiscoveryResponse(**snapshot.to_dict())


@app.post("/discover/{book_id}/contact", status_code=202)
def contact_owner(book_id: str, user_id: str = Depends(get_current_user)):
    """Sahiple iletişim henüz uygulanmadı; yalnızca isteği doğrular."""
    book = library.get_book(book_id)
    if not book or not book.available_for_swap:
        raise HTTPException(status_code=404, detail="Takasa açık kitap bulunamadı.")
    if book.owner_id == user_id:
        raise HTTPException(status_code=400, detail="Kendi kitabınız için takas isteyemezsiniz.")
    return {
        "book_id": book_id,
        "status": "pending",
        "message": "İletişim özelliği yakında eklenecek!",
    }


@app.get("/")
def read_root():
    return {"name": settings.app_name, "version": settings.app_version}
