import asyncio
import logging
import subprocess
import sys
from typing import Optional

import typer

from bookswap import database
from bookswap.book import Book
from bookswap.config import settings
from bookswap.discovery import DiscoveryController, DiscoveryFilters, DiscoveryService
from bookswap.errors import ExternalServiceError, OwnershipError
from bookswap.library import Library
from bookswap.profiles import ProfileStore
from bookswap.utils.ui_helpers import (
    set_output_mode, print_books, print_wishlist, print_candidates, print_profile, print_stats_result,
)
from bookswap.wishlist import Wishlist
from bookswap.wishlist_entry import WishlistEntry

DEMO_USER_ID = "22222222-2222-2222-2222-222222222222"

app = typer.Typer(help="BookSwap CLI: kütüphane, istek listesi ve takas keşfi")

_state = {"user": None}

@app.callback()
def _global_options(
    user: Optional[str] = typer.Option(
        None, "--user", "-u", envvar="BOOKSWAP_USER", help="İşlemleri yapan kullanıcının kimliği",
    ),
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Çıktı formatı: plain | json | rich (varsayılan: plain)",
    ),
):
    """CLI için genel seçenekler."""
    logging.basicConfig(level=settings.log_level)
    _state["user"] = user
    if output:
        set_output_mode(output)

def _require_user() -> str:
    user = _state.get("user")
    if not user:
        print("Kullanıcı belirtilmedi: --user veya BOOKSWAP_USER kullanın.")
        raise typer.Exit(code=1)
    return user

def _library() -> Library:
    return Library(database.DATABASE_FILE)

def _wishlist() -> Wishlist:
    return Wishlist(database.DATABASE_FILE)

def _profiles() -> ProfileStore:
    return ProfileStore(database.DATABASE_FILE)

# --- Kütüphane ---
@app.command("list")
def cli_list(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Başlık, yazar veya türde ara"),
):
    """Kendi kütüphanendeki kitapları listele."""
    print_books(_library().list_books(_require_user(), search=search))

@app.command("add")
def cli_add(
    title: str,
    author: str,
    condition: str = typer.Option("good", "--condition", "-c", help="excellent | good | fair | poor"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    cover_url: Optional[str] = typer.Option(None, "--cover-url"),
    not_available: bool = typer.Option(False, "--not-available", help="Takasa kapalı olarak ekle"),
):
    """Kütüphanene bir kitap ekle."""
    user = _require_user()
    book = Book(title=title, author=author, owner_id=user, isbn=isbn, condition=condition,
                description=description, genre=genre, cover_url=cover_url,
                available_for_swap=not not_available)
    try:
        book = _library().add_book(book)
    except ValueError as e:
        print(f"Hata: {e}")
        raise typer.Exit(code=1)
    print(f"Başarıyla eklendi: {book.title} - {book.author} ({book.id})")

@app.command("remove")
def cli_remove(book_id: str):
    """Kütüphanenden bir kitabı kaldır."""
    user = _require_user()
    try:
        removed = _library().remove_book(book_id, user)
    except OwnershipError as e:
        print(f"Hata: {e}")
        raise typer.Exit(code=1)
    if removed:
        print(f"{book_id} kimlikli kitap kaldırıldı.")
    else:
        print(f"{book_id} kimlikli kitap bulunamadı.")

def _apply_changes(update, item_id: str, **fields):
    """Yalnızca verilen seçenekleri günceller; hata olursa mesaj yazıp çıkar."""
    changes = {name: value for name, value in fields.items() if value is not None}
    if not changes:
        print("Hata: Güncellenecek en az bir alan sağlayın.")
        raise typer.Exit(code=1)
    try:
        return update(item_id, _require_user(), **changes)
    except (LookupError, OwnershipError, ValueError) as e:
        print(f"Hata: {e}")
        raise typer.Exit(code=1)

@app.command("edit")
def cli_edit(
    book_id: str,
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    condition: Optional[str] = typer.Option(None, "--condition", "-c", help="excellent | good | fair | poor"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
    cover_url: Optional[str] = typer.Option(None, "--cover-url"),
    available: Optional[bool] = typer.Option(None, "--available/--not-available", help="Takas durumu"),
):
    """Kütüphanendeki bir kitabı düzenle."""
    book = _apply_changes(
        _library().update_book, book_id, title=title, author=author, condition=condition, genre=genre,
        isbn=isbn, description=description, cover_url=cover_url, available_for_swap=available,
    )
    print(f"Güncellendi: {book.title} - {book.author} ({book.id})")

@app.command("stats")
def cli_stats():
    """Kütüphane istatistiklerini göster."""
    print_stats_result(_library().get_statistics(_require_user()))

# --- İstek Listesi ---
@app.command("wishlist")
def cli_wishlist(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Başlık, yazar veya türde ara"),
):
    """İstek listeni göster."""
    print_wishlist(_wishlist().list_entries(_require_user(), search=search))

@app.command("wish")
def cli_wish(
    title: str,
    author: str,
    priority: int = typer.Option(1, "--priority", "-p", min=1, max=3, help="1 (düşük) - 3 (yüksek)"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n"),
):
    """İstek listene bir kitap ekle."""
    user = _require_user()
    entry = WishlistEntry(title=title, author=author, owner_id=user, isbn=isbn, genre=genre,
                          notes=notes, priority=priority)
    try:
        entry = _wishlist().add_entry(entry)
    except ValueError as e:
        print(f"Hata: {e}")
        raise typer.Exit(code=1)
    print(f"İstek listesine eklendi: {entry.title} - {entry.author} ({entry.id})")

@app.command("edit-wish")
def cli_edit_wish(
    entry_id: str,
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    priority: Optional[int] = typer.Option(None, "--priority", "-p", min=1, max=3, help="1 (düşük) - 3 (yüksek)"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    notes: Optional[str] = typer.Option(None, "--notes", "-n"),
):
    """İstek listendeki bir öğeyi düzenle."""
    entry = _apply_changes(
        _wishlist().update_entry, entry_id, title=title, author=author, priority=priority,
        genre=genre, isbn=isbn, notes=notes,
    )
    print(f"Güncellendi: {entry.title} - {entry.author} (öncelik {entry.priority})")

@app.command("unwish")
def cli_unwish(entry_id: str):
    """İstek listenden bir öğeyi kaldır."""
    user = _require_user()
    try:
        removed = _wishlist().remove_entry(entry_id, user)
    except OwnershipError as e:
        print(f"Hata: {e}")
        raise typer.Exit(code=1)
    if removed:
        print(f"{entry_id} kimlikli öğe kaldırıldı.")
    else:
        print(f"{entry_id} kimlikli öğe bulunamadı.")

# --- Profil ---
@app.command("profile")
def cli_profile():
    """Profilini göster."""
    print_profile(_profiles().get_profile(_require_user()))

@app.command("set-profile")
def cli_set_profile(
    name: Optional[str] = typer.Option(None, "--name", help="Görünen ad"),
    address: Optional[str] = typer.Option(None, "--address", help="Adres (koordinatlar buradan hesaplanır)"),
):
    """Profilini kaydet; adres koordinatlara çevrilir."""
    result = _profiles().update_profile(_require_user(), display_name=name, address=address)
    if result.geocoding_error:
        print(f"Uyarı: {result.geocoding_error}")
    print_profile(result.profile)

# --- Keşif ---
@app.command("discover")
def cli_discover(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Başlık, yazar veya türde ara"),
    genre: Optional[str] = typer.Option(None, "--genre", "-g"),
    condition: Optional[str] = typer.Option(None, "--condition", "-c"),
    matches_only: bool = typer.Option(False, "--matches-only", help="Yalnızca istek listesi eşleşmeleri"),
    max_distance: Optional[float] = typer.Option(None, "--max-distance", help="km cinsinden üst sınır"),
):
    """Başkalarının takasa açık kitaplarını eşleşme ve mesafeye göre listele."""
    user = _require_user()
    try:
        filters = DiscoveryFilters(search=search, genre=genre, condition=condition,
                                   matches_only=matches_only, max_distance_km=max_distance)
    except ValueError as e:
        print(f"Hata: {e}")
        raise typer.Exit(code=1)

    library = _library()
    service = DiscoveryService(library, _wishlist(), _profiles())
    controller = DiscoveryController(service, user)
    try:
        snapshot = asyncio.run(controller.refresh(filters))
    except ExternalServiceError as e:
        print(f"Hata: {e}")
        raise typer.Exit(code=1)
    finally:
        controller.close()

    print_candidates(list(snapshot.candidates) if snapshot else [])
    if snapshot:
        print(f"Toplam takasa açık: {snapshot.total_available}, gösterilen: {len(snapshot.candidates)}")

# --- Demo verisi ---
@app.command("seed-demo")
def cli_seed_demo():
    """Keşif ekranını denemek için bir demo kullanıcı oluştur."""
    library = _library()
    if library.list_books(DEMO_USER_ID):
        print("Demo verisi zaten mevcut.")
        return

    _profiles().set_coordinates(
        DEMO_USER_ID,
        display_name="Demo User (Sarah)",
        address="Ben Gurion 20 Netanya",
        latitude=32.3104469,
        longitude=34.8746953,
    )
    library.add_book(Book("The Hobbit", "J.R.R. Tolkien", DEMO_USER_ID, condition="excellent",
                          genre="Fantasy", description="Demo book that matches your wishlist"))
    library.add_book(Book("Lord of the Rings", "J.R.R. Tolkien", DEMO_USER_ID, condition="good",
                          genre="Fantasy"))
    wishlist = _wishlist()
    wishlist.add_entry(WishlistEntry("Harry Potter", "J.K. Rowling", DEMO_USER_ID, genre="Fantasy"))
    wishlist.add_entry(WishlistEntry("Dune", "Frank Herbert", DEMO_USER_ID, genre="Science Fiction"))
    print(f"Demo verisi oluşturuldu (kullanıcı {DEMO_USER_ID}). Keşfetmek için 'discover' komutunu kullanın.")

# --- Sunucu ---
@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
):
    """API sunucusunu uvicorn ile başlat."""
    host = host or settings.api_host
    port = port or settings.api_port
    print(f"API başlatılıyor: http://{host}:{port}")
    subprocess.run([
        sys.executable, "-m", "uvicorn", "bookswap.api:app",
        "--host", host, "--port", str(port),
    ])

def run():
    app(prog_name="bookswap")

if __name__ == "__main__":
    run()
