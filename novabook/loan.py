from __future__ import annotations

from datetime import date

from novabook.config import settings
from novabook.errors import LibraryError


def _as_date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    # SQLite hands DATE columns back as ISO strings
    return date.fromisoformat(str(value)[:10])


def calculate_fine(date_due: date | None, return_date: date | None, fine_per_day: float | None = None) -> float:
    """Late fee for a loan: a flat rate for every whole day returned after the due date.

    Returns 0.0 when the loan is not returned yet, has no due date, or came
    back on or before the due date.
    """
    if return_date is None or date_due is None:
        return 0.0
    rate = settings.fine_per_day if fine_per_day is None else fine_per_day
    days_late = (return_date - date_due).days
    if days_late <= 0:
        return 0.0
    return days_late * rate


class Loan:
    """One member holding one copy of a book between ``date_loaned`` and ``date_due``."""

    def __init__(self, member_id: int, book_id: int, date_loaned: date | str, date_due: date | str,
                 returned: bool = False, return_date: date | str | None = None, id: int | None = None,
                 created_at: str | None = None, updated_at: str | None = None) -> None:
        if member_id is None:
            raise LibraryError("Member ID cannot be null")
        if book_id is None:
            raise LibraryError("Book ID cannot be null")
        if date_loaned is None:
            raise LibraryError("Date loaned cannot be null")
        if date_due is None:
            raise LibraryError("Date due cannot be null")
        date_loaned = _as_date(date_loaned)
        date_due = _as_date(date_due)
        if date_loaned > date_due:
            raise LibraryError("Date loaned cannot be after due date")

        self.id = id
        self.member_id = member_id
        self.book_id = book_id
        self.date_loaned = date_loaned
        self.date_due = date_due
        self.returned = bool(returned)
        self.return_date = _as_date(return_date)
        self.created_at = created_at
        self.updated_at = updated_at

    def is_overdue(self, today: date | None = None) -> bool:
        if self.returned:
            return False
        today = today or date.today()
        return today > self.date_due

    def days_until_due(self, today: date | None = None) -> int:
        """Days left before the due date; negative once overdue."""
        today = today or date.today()
        return (self.date_due - today).days

    def mark_returned(self, when: date | None = None) -> None:
        self.returned = True
        self.return_date = when or date.today()

    def fine(self, fine_per_day: float | None = None) -> float:
        return calculate_fine(self.date_due, self.return_date, fine_per_day)

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        state = "returned" if self.returned else f"due {self.date_due.isoformat()}"
        return f"Loan #{self.id}: member {self.member_id}, book {self.book_id} ({state})"

    def to_dict(self, today: date | None = None) -> dict:
        return {
            "id": self.id,
            "member_id": self.member_id,
            "book_id": self.book_id,
            "date_loaned": self.date_loaned.isoformat(),
            "date_due": self.date_due.isoformat(),
            "returned": self.returned,
            "return_date": self.return_date.isoformat() if self.return_date else None,
            "overdue": self.is_overdue(today),
            "fine": self.fine(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "Loan":
        return Loan(
            id=data.get("id"),
            member_id=data["member_id"],
            book_id=data["book_id"],
            date_loaned=data["date_loaned"],
            date_due=data["date_due"],
            returned=bool(data.get("returned", False)),
            return_date=data.get("return_date"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
