import os
import json
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# İzin verilen değerler: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "BOOKSWAP_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    # Geçersiz değerler yoksayılır; mevcut varsayılan korunur
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_books(books: List[Any]) -> None:
    """Kütüphaneyi yazdır.
    - plain: 'id - Başlık by Yazar [durum]' satırları
    - json: to_dict() listesi
    - rich: Rich tablosu
    """
    if not books:
        print("Kütüphanenizde kitap yok.")
        return

    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False, indent=2))
    elif mode == "rich":
        table = Table(title="Kütüphanem")
        table.add_column("ID", style="dim")
        table.add_column("Başlık", style="bold")
        table.add_column("Yazar")
        table.add_column("Durum")
        table.add_column("Takas")
        for b in books:
            table.add_row(b.id, b.title, b.author, b.condition, "✓" if b.available_for_swap else "-")
        _console.print(table)
    else:
        for b in books:
            swap = "" if b.available_for_swap else " (takasa kapalı)"
            print(f"{b.id} - {b.title} by {b.author} [{b.condition}]{swap}")


def print_wishlist(entries: List[Any]) -> None:
    if not entries:
        print("İstek listeniz boş.")
        return

    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([e.to_dict() for e in entries], ensure_ascii=False, indent=2))
    elif mode == "rich":
        table = Table(title="İstek Listem")
        table.add_column("ID", style="dim")
        table.add_column("Başlık", style="bold")
        table.add_column("Yazar")
        table.add_column("Öncelik", justify="right")
        for e in entries:
            table.add_row(e.id, e.title, e.author, str(e.priority))
        _console.print(table)
    else:
        for e in entries:
            print(f"{e.id} - {e.title} by {e.author} (öncelik {e.priority})")


def _distance_label(distance_km) -> str:
    return f"{distance_km:.1f} km" if distance_km is not None else "mesafe bilinmiyor"


def _match_label(candidate) -> str:
    if candidate.is_double_match:
        return "ÇİFT EŞLEŞME"
    if candidate.is_wishlist_match:
        return "EŞLEŞME"
    return ""


def print_candidates(candidates: List[Any]) -> None:
    """Sıralı takas adaylarını yazdır."""
    if not candidates:
        print("Takasa açık kitap bulunamadı.")
        return

    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([c.to_dict() for c in candidates], ensure_ascii=False, indent=2))
    elif mode == "rich":
        table = Table(title="Takasa Açık Kitaplar")
        table.add_column("Başlık", style="bold")
        table.add_column("Yazar")
        table.add_column("Sahibi")
        table.add_column("Mesafe", justify="right")
        table.add_column("Eşleşme", style="green")
        table.add_column("Puan", justify="right")
        for c in candidates:
            owner = c.owner.display_name if c.owner and c.owner.display_name else c.book.owner_id
            table.add_row(c.book.title, c.book.author, owner, _distance_label(c.distance_km),
                          _match_label(c), f"{c.match_score:.1f}")
        _console.print(table)
    else:
        for c in candidates:
            label = _match_label(c)
            suffix = f" [{label}]" if label else ""
            print(f"{c.book.title} by {c.book.author} - {_distance_label(c.distance_km)}{suffix}")


def print_profile(profile: Any) -> None:
    if profile is None:
        print("Profil bulunamadı.")
        return
    if get_output_mode() == "json":
        print(json.dumps(profile.to_dict(), ensure_ascii=False, indent=2))
        return
    coords = profile.coordinates
    location = f"{coords.latitude:.5f}, {coords.longitude:.5f}" if coords else "bilinmiyor"
    lines = [
        f"Ad: {profile.display_name or '-'}",
        f"Adres: {profile.address or '-'}",
        f"Konum: {location}",
    ]
    if get_output_mode() == "rich":
        _console.print(Panel.fit("\n".join(lines), title="Profil"))
    else:
        print("\n".join(lines))


def print_stats_result(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        body = "\n".join(f"{k}: {v}" for k, v in stats.items())
        _console.print(Panel.fit(body, title="İstatistikler"))
    else:
        print(f"Toplam kitap: {stats.get('total_books', 0)}")
        print(f"Takasa açık: {stats.get('available_for_swap', 0)}")
        print(f"Tür sayısı: {stats.get('unique_genres', 0)}")
        print(f"İstek listesi: {stats.get('wishlist_size', 0)}")
