"""Loan lifecycle and borrowing rules.

A loan is created by taking one copy off the shelf and inserting the loan
row; it ends by marking the row returned and putting the copy back. The two
halves of each step are separate statements, so the stock decrement is
guarded in SQL (``stock > 0``) and undone by hand if the insert fails.
"""

import logging
from datetime import date, timedelta
from typing import Callable, List, Optional

from novabook.config import settings
from novabook.errors import LibraryError
from novabook.loan import Loan
from novabook.repositories import BookRepository, LoanRepository, MemberRepository
from novabook.validators import is_valid_id, validate_id

logger = logging.getLogger(__name__)

DEFAULT_LOAN_PERIOD_DAYS = settings.default_loan_period_days


class LoanService:
    def __init__(self, loan_repo: LoanRepository, book_repo: BookRepository, member_repo: MemberRepository,
                 today: Callable[[], date] = date.today) -> None:
        self.loan_repo = loan_repo
        self.book_repo = book_repo
        self.member_repo = member_repo
        self.today = today

    # ------------------------- Lending ------------------------- #
    def create_loan(self, member_id: int, book_id: int, loan_period_days: Optional[int] = None) -> Loan:
        """Lend one copy of ``book_id`` to ``member_id``.

        Raises LibraryError when the member is unknown, inactive or deleted,
        already holds as many loans as their tier allows, or when the book is
        unknown or out of stock.
        """
        validate_id(member_id, "Member ID")
        validate_id(book_id, "Book ID")
        if loan_period_days is None:
            loan_period_days = DEFAULT_LOAN_PERIOD_DAYS
        if loan_period_days <= 0:
            raise LibraryError("Loan period must be positive")

        member = self.member_repo.find_active_by_id(member_id)
        if member is None:
            raise LibraryError(f"Member not found or inactive with ID: {member_id}")

        if not self.can_member_borrow_more(member_id):
            logger.warning(f"Loan refused: member {member_id} reached the limit of {self.get_member_loan_limit(member_id)}")
            raise LibraryError("Member has reached borrowing limit")

        book = self.book_repo.find_by_id(book_id)
        if book is None:
            raise LibraryError(f"Book not found with ID: {book_id}")
        if not book.is_available:
            logger.warning(f"Loan refused: book {book_id} has no stock")
            raise LibraryError("Book is not available for lending")

        loan_date = self.today()
        loan = Loan(member_id=member_id, book_id=book_id, date_loaned=loan_date,
                    date_due=loan_date + timedelta(days=loan_period_days))

        # The stock may have reached 0 since the read above.
        if not self.book_repo.decrease_stock(book_id):
            raise LibraryError("Book is not available for lending")
        try:
            created = self.loan_repo.create(loan)
        except LibraryError as e:
            self.book_repo.increase_stock(book_id)
            logger.error(f"Loan insert failed for member {member_id}, book {book_id}; stock restored")
            raise LibraryError(f"Failed to create loan: {e}") from e

        logger.info(f"Loan {created.id} created: member {member_id}, book {book_id}, due {created.date_due}")
        return created

    def return_loan(self, loan_id: int) -> Loan:
        validate_id(loan_id, "Loan ID")
        loan = self.loan_repo.find_by_id(loan_id)
        if loan is None:
            raise LibraryError(f"Loan not found with ID: {loan_id}")
        if loan.returned:
            raise LibraryError("Book has already been returned")

        try:
            self.loan_repo.mark_as_returned(loan_id, self.today())
            self.book_repo.increase_stock(loan.book_id)
        except LibraryError as e:
            raise LibraryError(f"Failed to return book: {e}") from e

        returned = self.loan_repo.find_by_id(loan_id)
        logger.info(f"Loan {loan_id} returned; fine {returned.fine(settings.fine_per_day):.2f}")
        return returned

    def return_book(self, member_id: int, book_id: int) -> Loan:
        """Return the member's open loan for ``book_id``."""
        validate_id(member_id, "Member ID")
        validate_id(book_id, "Book ID")

        for loan in self.loan_repo.find_active_by_member_id(member_id):
            if loan.book_id == book_id:
                return self.return_loan(loan.id)
        raise LibraryError(f"No active loan found for member {member_id} and book {book_id}")

    def extend_loan(self, loan_id: int, additional_days: int) -> Loan:
        validate_id(loan_id, "Loan ID")
        if additional_days is None or additional_days <= 0:
            raise LibraryError("Additional days must be positive")

        loan = self.loan_repo.find_by_id(loan_id)
        if loan is None:
            raise LibraryError(f"Loan not found with ID: {loan_id}")
        if loan.returned:
            raise LibraryError("Cannot extend a returned loan")

        loan.date_due = loan.date_due + timedelta(days=additional_days)
        updated = self.loan_repo.update(loan)
        logger.info(f"Loan {loan_id} extended to {updated.date_due}")
        return updated

    # ------------------------- Queries ------------------------- #
    def find_loan_by_id(self, loan_id: int) -> Optional[Loan]:
        if not is_valid_id(loan_id):
            return None
        return self.loan_repo.find_by_id(loan_id)

    def get_loans_by_member(self, member_id: int) -> List[Loan]:
        if not is_valid_id(member_id):
            return []
        return self.loan_repo.find_by_member_id(member_id)

    def get_active_loans_by_member(self, member_id: int) -> List[Loan]:
        if not is_valid_id(member_id):
            return []
        return self.loan_repo.find_active_by_member_id(member_id)

    def get_loans_by_book(self, book_id: int) -> List[Loan]:
        if not is_valid_id(book_id):
            return []
        return self.loan_repo.find_by_book_id(book_id)

    def get_overdue_loans(self) -> List[Loan]:
        return self.loan_repo.find_overdue(self.today())

    def get_loans_due_on(self, due_date: Optional[date]) -> List[Loan]:
        if due_date is None:
            return []
        return self.loan_repo.find_due_on(due_date)

    def get_loans_due_today(self) -> List[Loan]:
        return self.get_loans_due_on(self.today())

    def get_loans_by_date_range(self, start: Optional[date], end: Optional[date]) -> List[Loan]:
        if start is None or end is None:
            return []
        if start > end:
            raise LibraryError("Start date cannot be after end date")
        return self.loan_repo.find_by_date_range(start, end)

    def get_all_active_loans(self) -> List[Loan]:
        return self.loan_repo.find_all_active()

    def get_all_loans(self) -> List[Loan]:
        return self.loan_repo.find_all()

    # ------------------------- Eligibility ------------------------- #
    def has_active_loans(self, member_id: int) -> bool:
        return self.get_active_loan_count(member_id) > 0

    def get_active_loan_count(self, member_id: int) -> int:
        if not is_valid_id(member_id):
            return 0
        return self.loan_repo.count_active_by_member(member_id)

    def get_member_loan_limit(self, member_id: int) -> int:
        if not is_valid_id(member_id):
            return 0
        member = self.member_repo.find_by_id(member_id)
        if member is None:
            return 0
        return member.loan_limit

    def can_member_borrow_more(self, member_id: int) -> bool:
        if not is_valid_id(member_id):
            return False
        return self.get_active_loan_count(member_id) < self.get_member_loan_limit(member_id)

    # ------------------------- Fines ------------------------- #
    def calculate_fine(self, loan_id: int) -> float:
        """Fine owed for a loan: FINE_PER_DAY for each whole day it came back late."""
        validate_id(loan_id, "Loan ID")
        loan = self.loan_repo.find_by_id(loan_id)
        if loan is None:
            raise LibraryError(f"Loan not found with ID: {loan_id}")
        return loan.fine(settings.fine_per_day)
