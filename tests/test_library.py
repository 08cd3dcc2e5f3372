import pytest

from bookswap.book import Book
from bookswap.errors import OwnershipError
from bookswap.library import Library


def test_add_list_and_get(lib):
    assert lib.list_books("alice") == []

    book = lib.add_book(Book("Ulysses", "James Joyce", "alice", genre="Classic"))

    assert book.id is not None
    assert book.created_at is not None
    assert lib.get_book(book.id).title == "Ulysses"
    assert [b.title for b in lib.list_books("alice")] == ["Ulysses"]
    assert lib.list_books("bob") == []


def test_defaults(lib):
    book = lib.add_book(Book("Emma", "Jane Austen", "alice"))
    stored = lib.get_book(book.id)
    assert stored.condition == "good"
    assert stored.available_for_swap is True


def test_list_books_newest_first(lib):
    for title in ("First", "Second", "Third"):
        lib.add_book(Book(title, "Author", "alice"))
    assert [b.title for b in lib.list_books("alice")] == ["Third", "Second", "First"]


def test_persistence(db_file):
    Library(db_file=db_file).add_book(Book("Sapiens", "Yuval Noah Harari", "alice"))
    assert Library(db_file=db_file).list_books("alice")[0].title == "Sapiens"


@pytest.mark.parametrize("kwargs,message", [
    ({"title": "  ", "author": "Author"}, "Başlık"),
    ({"title": "Title", "author": "12345"}, "yazar"),
    ({"title": "Title", "author": "Author", "condition": "mint"}, "durum"),
    ({"title": "Title", "author": "Author", "isbn": "12"}, "ISBN"),
    ({"title": "Title", "author": "Author", "cover_url": "not a url"}, "URL"),
])
def test_add_book_validation(lib, kwargs, message):
    with pytest.raises(ValueError, match=message):
        lib.add_book(Book(owner_id="alice", **kwargs))
    assert lib.list_books("alice") == []


def test_numeric_title_is_valid(lib):
    book = lib.add_book(Book("1984", "George Orwell", "alice", isbn="978-0-452-28423-4"))
    assert book.isbn == "9780452284234"


def test_update_book_partial(lib):
    book = lib.add_book(Book("Old Title", "Old Author", "alice", genre="Drama"))

    updated = lib.update_book(book.id, "alice", title="New Title", available_for_swap=False)
    assert updated.title == "New Title"
    assert updated.author == "Old Author"
    assert updated.genre == "Drama"

    stored = lib.get_book(book.id)
    assert stored.title == "New Title"
    assert stored.available_for_swap is False


def test_update_book_by_other_user_is_rejected(lib):
    book = lib.add_book(Book("Mine", "Author", "alice"))
    with pytest.raises(OwnershipError):
        lib.update_book(book.id, "mallory", title="Stolen")
    assert lib.get_book(book.id).title == "Mine"


def test_update_book_not_found(lib):
    with pytest.raises(LookupError):
        lib.update_book("missing", "alice", title="New")


def test_update_book_rejects_unknown_fields(lib):
    book = lib.add_book(Book("Mine", "Author", "alice"))
    with pytest.raises(ValueError):
        lib.update_book(book.id, "alice", owner_id="mallory")


def test_remove_book(lib):
    book = lib.add_book(Book("Test", "Author", "alice"))
    with pytest.raises(OwnershipError):
        lib.remove_book(book.id, "mallory")
    assert lib.remove_book(book.id, "alice") is True
    assert lib.remove_book(book.id, "alice") is False


def test_list_available_books_excludes_own_and_unavailable(lib):
    lib.add_book(Book("Mine", "Author", "alice"))
    lib.add_book(Book("Hidden", "Author", "bob", available_for_swap=False))
    lib.add_book(Book("Shared", "Author", "bob"))
    lib.add_book(Book("Also Shared", "Author", "carol"))

    titles = [b.title for b in lib.list_available_books(exclude_owner_id="alice")]
    assert titles == ["Also Shared", "Shared"]


def test_get_statistics(lib, wishlist):
    from bookswap.wishlist_entry import WishlistEntry

    lib.add_book(Book("A", "Author", "alice", genre="Fantasy"))
    lib.add_book(Book("B", "Author", "alice", genre="Fantasy", available_for_swap=False))
    lib.add_book(Book("C", "Author", "alice", genre="Sci-Fi"))
    wishlist.add_entry(WishlistEntry("Dune", "Frank Herbert", "alice"))

    assert lib.get_statistics("alice") == {
        "total_books": 3,
        "available_for_swap": 2,
        "unique_genres": 2,
        "wishlist_size": 1,
    }


@pytest.mark.parametrize("search,expected", [
    ("dune", ["Dune"]),
    ("AUSTEN", ["Emma"]),
    ("classic", ["Emma"]),
    ("  ", ["Emma", "Dune"]),
    ("tolkien", []),
])
def test_list_books_search(lib, search, expected):
    lib.add_book(Book("Dune", "Frank Herbert", "alice", genre="Sci-Fi"))
    lib.add_book(Book("Emma", "Jane Austen", "alice", genre="Classic"))
    lib.add_book(Book("Emma", "Jane Austen", "bob", genre="Classic"))

    assert [b.title for b in lib.list_books("alice", search=search)] == expected
