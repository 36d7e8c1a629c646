from __future__ import annotations

from novabook.validators import ISBNValidator, validate_book


class Book:
    """A catalogue title together with the number of lendable copies."""

    def __init__(self, isbn: str, title: str, author: str, stock: int = 0, id: int | None = None,
                 created_at: str | None = None, updated_at: str | None = None) -> None:
        validate_book(isbn, title, author, stock)
        self.id = id
        self.isbn = ISBNValidator.normalize_isbn(isbn)
        self.title = title.strip()
        self.author = author.strip()
        self.stock = stock
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def is_available(self) -> bool:
        return self.stock > 0

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ISBN: {self.isbn}, stock: {self.stock})"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "isbn": self.isbn,
            "title": self.title,
            "author": self.author,
            "stock": self.stock,
            "available": self.is_available,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            isbn=data["isbn"],
            title=data["title"],
            author=data["author"],
            stock=int(data.get("stock") or 0),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
