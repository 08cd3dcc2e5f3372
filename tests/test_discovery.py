import asyncio
import sqlite3
import threading

import pytest

from bookswap.book import Book
from bookswap.discovery import DiscoveryController, DiscoveryFilters, DiscoveryService, DiscoverySnapshot
from bookswap.errors import ExternalServiceError
from bookswap.matching import haversine_km
from bookswap.wishlist_entry import WishlistEntry

NETANYA = (32.31, 34.87)
TEL_AVIV = (32.08, 34.78)


@pytest.fixture
def service(lib, wishlist, profiles):
    return DiscoveryService(lib, wishlist, profiles, match_mode="token")


@pytest.fixture
def swap_world(lib, wishlist, profiles):
    """alice Dune istiyor, bob Dune'a sahip ve alice'in Hobbit'ini istiyor."""
    profiles.set_coordinates("alice", "Alice", None, *NETANYA)
    profiles.set_coordinates("bob", "Bob", None, *TEL_AVIV)
    lib.add_book(Book("The Hobbit", "J.R.R. Tolkien", "alice"))
    wishlist.add_entry(WishlistEntry("Dune", "Frank Herbert", "alice"))
    wishlist.add_entry(WishlistEntry("Hobbit", "J.R.R. Tolkien", "bob"))
    lib.add_book(Book("Dune", "Frank Herbert", "bob", genre="Sci-Fi", condition="excellent"))
    lib.add_book(Book("Emma", "Jane Austen", "carol", genre="Classic"))
    lib.add_book(Book("Dune Messiah", "Frank Herbert", "carol", genre="Sci-Fi"))


def test_double_match_ranks_first(service, swap_world):
    snapshot = service.discover("alice")

    titles = [c.book.title for c in snapshot.candidates]
    assert titles == ["Dune", "Dune Messiah", "Emma"]

    dune = snapshot.candidates[0]
    expected_distance = haversine_km(*NETANYA, *TEL_AVIV)
    assert dune.is_double_match
    assert dune.distance_km == pytest.approx(expected_distance)
    assert dune.match_score == pytest.approx(1000 - expected_distance)
    assert dune.owner.display_name == "Bob"

    messiah = snapshot.candidates[1]
    assert messiah.is_wishlist_match
    assert not messiah.is_double_match
    assert messiah.distance_km is None
    assert messiah.match_score == 100

    assert snapshot.candidates[2].match_score == 0
    assert snapshot.total_available == 3


def test_own_and_unavailable_books_are_excluded(service, swap_world, lib):
    lib.add_book(Book("Hidden", "Author", "bob", available_for_swap=False))
    titles = [c.book.title for c in service.discover("alice").candidates]
    assert "The Hobbit" not in titles
    assert "Hidden" not in titles


def test_owner_wishlists_fetched_once_for_matched_owners(service, swap_world, wishlist, monkeypatch):
    calls = []
    original = wishlist.titles_for_owners

    def spy(owner_ids):
        calls.append(set(owner_ids))
        return original(owner_ids)

    monkeypatch.setattr(wishlist, "titles_for_owners", spy)
    service.discover("alice")

    assert calls == [{"bob", "carol"}]


def test_owner_wishlists_not_fetched_without_matches(service, lib, wishlist, monkeypatch):
    lib.add_book(Book("Emma", "Jane Austen", "carol"))
    lib.add_book(Book("Mine", "Author", "alice"))
    monkeypatch.setattr(wishlist, "titles_for_owners", pytest.fail)

    snapshot = service.discover("alice")
    assert [c.book.title for c in snapshot.candidates] == ["Emma"]


def test_no_double_match_without_own_library(service, lib, wishlist, monkeypatch):
    lib.add_book(Book("Dune", "Frank Herbert", "bob"))
    wishlist.add_entry(WishlistEntry("Dune", "Frank Herbert", "alice"))
    monkeypatch.setattr(wishlist, "titles_for_owners", pytest.fail)

    candidate = service.discover("alice").candidates[0]
    assert candidate.is_wishlist_match
    assert not candidate.is_double_match


def test_requester_without_location_gets_unknown_distances(service, lib, profiles):
    profiles.set_coordinates("bob", "Bob", None, *TEL_AVIV)
    lib.add_book(Book("Dune", "Frank Herbert", "bob"))
    assert service.discover("alice").candidates[0].distance_km is None


@pytest.mark.parametrize("filters,expected", [
    (DiscoveryFilters(search="austen"), ["Emma"]),
    (DiscoveryFilters(search="sci-fi"), ["Dune", "Dune Messiah"]),
    (DiscoveryFilters(genre="Classic"), ["Emma"]),
    (DiscoveryFilters(condition="excellent"), ["Dune"]),
    (DiscoveryFilters(matches_only=True), ["Dune", "Dune Messiah"]),
    (DiscoveryFilters(max_distance_km=50), ["Dune"]),
    (DiscoveryFilters(max_distance_km=5), []),
])
def test_filters(service, swap_world, filters, expected):
    snapshot = service.discover("alice", filters)
    assert [c.book.title for c in snapshot.candidates] == expected
    assert snapshot.total_available == 3


def test_facets(service, swap_world):
    snapshot = service.discover("alice", DiscoveryFilters(genre="Classic"))
    assert snapshot.genres == ("Classic", "Sci-Fi")
    assert snapshot.conditions == ("excellent", "good")


def test_invalid_filters():
    with pytest.raises(ValueError):
        DiscoveryFilters(condition="mint")
    with pytest.raises(ValueError):
        DiscoveryFilters(max_distance_km=-1)


def test_store_failure_becomes_external_service_error(service, lib, monkeypatch):
    def broken(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(lib, "list_available_books", broken)
    with pytest.raises(ExternalServiceError):
        service.discover("alice")


def test_snapshot_to_dict(service, swap_world):
    data = service.discover("alice").to_dict()
    assert data["user_id"] == "alice"
    assert data["candidates"][0]["title"] == "Dune"
    assert data["candidates"][0]["is_double_match"] is True
    assert data["generated_at"]


# ------------------------- controller ------------------------- #
class BlockingService:
    """'slow' aramasında serbest bırakılana kadar bekleyen sahte servis."""

    def __init__(self):
        self.release = threading.Event()

    def discover(self, user_id, filters=None):
        filters = filters or DiscoveryFilters()
        if filters.search == "slow":
            self.release.wait(5)
        return DiscoverySnapshot(user_id=user_id, candidates=(), filters=filters)


def test_controller_publishes_latest_snapshot(service, swap_world):
    controller = DiscoveryController(service, "alice")
    assert controller.snapshot is None

    snapshot = asyncio.run(controller.refresh())

    assert snapshot is controller.snapshot
    assert snapshot.candidates[0].book.title == "Dune"


def test_stale_refresh_is_discarded():
    service = BlockingService()
    controller = DiscoveryController(service, "alice")

    async def scenario():
        slow = asyncio.create_task(controller.refresh(DiscoveryFilters(search="slow")))
        await asyncio.sleep(0)
        fast = await controller.refresh(DiscoveryFilters(search="fast"))
        service.release.set()
        return fast, await slow

    fast, stale = asyncio.run(scenario())

    assert stale is None
    assert controller.snapshot is fast
    assert fast.filters.search == "fast"


def test_close_discards_in_flight_refresh():
    service = BlockingService()
    controller = DiscoveryController(service, "alice")

    async def scenario():
        pending = asyncio.create_task(controller.refresh(DiscoveryFilters(search="slow")))
        await asyncio.sleep(0)
        controller.close()
        service.release.set()
        return await pending

    assert asyncio.run(scenario()) is None
    assert controller.snapshot is None
