from __future__ import annotations

CONDITIONS = ("excellent", "good", "fair", "poor")


class Book:
    """Bir kullanıcının kütüphanesindeki, takasa açılabilen tek bir kitabı temsil eder."""

    def __init__(self, title: str, author: str, owner_id: str, id: str | None = None,
                 isbn: str | None = None, condition: str = "good", description: str | None = None,
                 genre: str | None = None, cover_url: str | None = None,
                 available_for_swap: bool = True, created_at: str | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.owner_id = owner_id
        self.isbn = isbn.strip() if isbn else None
        self.condition = condition
        self.description = description
        self.genre = genre.strip() if genre else None
        self.cover_url = cover_url or None
        self.available_for_swap = bool(available_for_swap)
        self.created_at = created_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} ({self.condition})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "condition": self.condition,
            "description": self.description,
            "genre": self.genre,
            "cover_url": self.cover_url,
            "available_for_swap": self.available_for_swap,
            "owner_id": self.owner_id,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        # SQLite boolean değerleri 0/1 tamsayı olarak döner
        return Book(
            id=data.get("id"),
            title=data["title"],
            author=data["author"],
            owner_id=data["owner_id"],
            isbn=data.get("isbn"),
            condition=data.get("condition") or "good",
            description=data.get("description"),
            genre=data.get("genre"),
            cover_url=data.get("cover_url"),
            available_for_swap=bool(data.get("available_for_swap", True)),
            created_at=data.get("created_at"),
        )
