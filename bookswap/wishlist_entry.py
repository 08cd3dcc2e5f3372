from __future__ import annotations

PRIORITIES = (1, 2, 3)


class WishlistEntry:
    """Bir kullanıcının edinmek istediği kitap."""

    def __init__(self, title: str, author: str, owner_id: str, id: str | None = None,
                 isbn: str | None = None, genre: str | None = None, description: str | None = None,
                 notes: str | None = None, priority: int = 1, created_at: str | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.owner_id = owner_id
        self.isbn = isbn.strip() if isbn else None
        self.genre = genre.strip() if genre else None
        self.description = description
        self.notes = notes
        self.priority = int(priority)
        self.created_at = created_at

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (öncelik {self.priority})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "genre": self.genre,
            "description": self.description,
            "notes": self.notes,
            "priority": self.priority,
            "owner_id": self.owner_id,
            "created_at": self.created_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "WishlistEntry":
        return WishlistEntry(
            id=data.get("id"),
            title=data["title"],
            author=data["author"],
            owner_id=data["owner_id"],
            isbn=data.get("isbn"),
            genre=data.get("genre"),
            description=data.get("description"),
            notes=data.get("notes"),
            priority=data.get("priority") or 1,
            created_at=data.get("created_at"),
        )
