from datetime import date
from typing import Any, Callable, Dict, Optional

import novabook.database as database
from novabook.config import settings
from novabook.database import initialize_database
from novabook.repositories import (
    BookRepository,
    LoanRepository,
    MemberRepository,
    MembershipRequestRepository,
    UserRepository,
)
from novabook.services import BookService, LoanService, MemberService, MembershipRequestService, UserService


class Library:
    """Wires the repositories and services of one library database together."""

    def __init__(self, db_file: Optional[str] = None, today: Callable[[], date] = date.today) -> None:
        # Callers (and tests) may point the module-level helpers in database.py at
        # another file before the schema is created.
        if db_file:
            database.DATABASE_FILE = db_file

        initialize_database()  # Ensure DB and tables exist
        self.today = today

        self.user_repo = UserRepository()
        self.member_repo = MemberRepository()
        self.book_repo = BookRepository()
        self.loan_repo = LoanRepository()
        self.request_repo = MembershipRequestRepository()

        self.users = UserService(self.user_repo)
        self.members = MemberService(self.member_repo)
        self.books = BookService(self.book_repo, self.loan_repo)
        self.loans = LoanService(self.loan_repo, self.book_repo, self.member_repo, today=today)
        self.requests = MembershipRequestService(self.request_repo, self.member_repo, self.user_repo)

        if settings.admin_email and settings.admin_password:
            self.users.ensure_default_admin(settings.admin_email, settings.admin_password)

    @property
    def db_file(self) -> str:
        return database.DATABASE_FILE

    def get_statistics(self) -> Dict[str, Any]:
        """Get library statistics."""
        totals = self.book_repo.totals()
        return {
            "total_titles": totals["total_titles"],
            "total_copies": totals["total_copies"],
            "total_members": self.member_repo.count(),
            "active_loans": self.loan_repo.count_active(),
            "overdue_loans": self.loan_repo.count_overdue(self.today()),
        }

    def close(self) -> None:
        """Compatibility helper: connections are opened per operation, nothing to release."""
        return None
