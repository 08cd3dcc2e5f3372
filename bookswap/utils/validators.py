import re
from typing import Optional

from bookswap.book import CONDITIONS
from bookswap.wishlist_entry import PRIORITIES


class ISBNValidator:
    """Lenient ISBN-10/ISBN-13 checks for the optional isbn fields."""

    @staticmethod
    def normalize_isbn(raw: Optional[str]) -> str:
        if raw is None:
            return ""
        s = re.sub(r"[^0-9Xx]", "", raw)
        return s.upper()

    @staticmethod
    def is_valid_isbn(isbn: Optional[str]) -> bool:
        """ISBN-10: 9 rakam + rakam veya 'X'; ISBN-13: 13 rakam."""
        s = ISBNValidator.normalize_isbn(isbn)
        if len(s) == 10:
            return s[:9].isdigit() and (s[9].isdigit() or s[9] == "X")
        if len(s) == 13:
            return s.isdigit()
        return False


class TextValidator:

    @staticmethod
    def is_blank(text: Optional[str]) -> bool:
        return text is None or not text.strip()

    @staticmethod
    def validate_title(title: Optional[str]) -> bool:
        # "1984" gibi yalnızca rakamdan oluşan başlıklar geçerlidir
        return not TextValidator.is_blank(title)

    @staticmethod
    def validate_author(author: Optional[str]) -> bool:
        if TextValidator.is_blank(author):
            return False
        return not author.strip().isdigit()

    @staticmethod
    def validate_url(url: Optional[str]) -> bool:
        if TextValidator.is_blank(url):
            return False
        return re.match(r"^https?://[^\s/$.?#][^\s]*$", url.strip(), re.IGNORECASE) is not None

    @staticmethod
    def matches_search(term: Optional[str], *texts: Optional[str]) -> bool:
        """Arama terimi metinlerden birinde geçiyor mu (büyük/küçük harf duyarsız).

        Boş terim her şeyle eşleşir.
        """
        term = (term or "").strip().casefold()
        if not term:
            return True
        return any(term in text.casefold() for text in texts if text)


class SwapValidator:
    """Kitap durumu, öncelik ve koordinat kontrolleri."""

    @staticmethod
    def validate_condition(condition: Optional[str]) -> bool:
        return condition in CONDITIONS

    @staticmethod
    def validate_priority(priority) -> bool:
        return isinstance(priority, int) and not isinstance(priority, bool) and priority in PRIORITIES

    @staticmethod
    def validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> bool:
        if latitude is None or longitude is None:
            return False
        return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0
