import pytest

from bookswap import database
from bookswap.library import Library
from bookswap.profile import Coordinates
from bookswap.profiles import ProfileStore
from bookswap.wishlist import Wishlist


class FakeGeocoder:
    """Adres -> koordinat sözlüğüyle çalışan sahte coğrafi kodlayıcı."""

    def __init__(self, known=None, error=None):
        self.known = known or {}
        self.error = error
        self.calls = []

    def geocode(self, address):
        self.calls.append(address)
        if self.error:
            raise self.error
        coords = self.known.get(address)
        return Coordinates(*coords) if coords else None


@pytest.fixture
def db_file(tmp_path, monkeypatch):
    # Her test için benzersiz bir veritabanı dosyası oluştur
    path = str(tmp_path / "bookswap_test.db")
    monkeypatch.setattr(database, "DATABASE_FILE", path)
    database.initialize_database(path)
    return path


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    monkeypatch.setenv("BOOKSWAP_CLI_OUTPUT", "plain")


@pytest.fixture
def lib(db_file):
    return Library(db_file=db_file)


@pytest.fixture
def wishlist(db_file):
    return Wishlist(db_file=db_file)


@pytest.fixture
def geocoder():
    return FakeGeocoder(known={
        "Ben Gurion 20 Netanya": (32.3104469, 34.8746953),
        "Dizengoff 50 Tel Aviv": (32.0779, 34.7748),
    })


@pytest.fixture
def profiles(db_file, geocoder):
    return ProfileStore(db_file=db_file, geocoder=geocoder)


@pytest.fixture
def make_geocoder():
    return FakeGeocoder
