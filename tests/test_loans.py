from datetime import date, timedelta

import pytest

from novabook.errors import LibraryError
from novabook.loan import Loan, calculate_fine


@pytest.fixture
def book(lib):
    return lib.books.add_book("9780199535675", "Ulysses", "James Joyce", initial_stock=2)


@pytest.fixture
def member(lib):
    return lib.members.register_member("Leopold Bloom")


def _add_books(lib, count, stock=1):
    return [
        lib.books.add_book(f"97800000000{i:02d}", f"Title {i}", "Some Author", initial_stock=stock)
        for i in range(count)
    ]


# ------------------------- Creating loans ------------------------- #

def test_create_loan_decrements_stock_and_sets_due_date(lib, book, member, clock):
    loan = lib.loans.create_loan(member.id, book.id)

    assert loan.id is not None
    assert loan.date_loaned == clock()
    assert loan.date_due == clock() + timedelta(days=14)
    assert loan.returned is False
    assert lib.books.get_book_stock(book.id) == 1


def test_create_loan_with_custom_period(lib, book, member, clock):
    loan = lib.loans.create_loan(member.id, book.id, loan_period_days=7)
    assert loan.date_due == clock() + timedelta(days=7)


def test_create_loan_rejects_non_positive_period(lib, book, member):
    with pytest.raises(LibraryError, match="Loan period must be positive"):
        lib.loans.create_loan(member.id, book.id, loan_period_days=0)
    assert lib.books.get_book_stock(book.id) == 2


def test_create_loan_out_of_stock(lib, member):
    book = lib.books.add_book("9780099590088", "Sapiens", "Yuval Noah Harari", initial_stock=0)

    with pytest.raises(LibraryError, match="Book is not available for lending"):
        lib.loans.create_loan(member.id, book.id)
    assert lib.books.get_book_stock(book.id) == 0
    assert lib.loans.get_all_loans() == []


def test_last_copy_can_only_be_lent_once(lib, member):
    book = lib.books.add_book("9780099590088", "Sapiens", "Yuval Noah Harari", initial_stock=1)
    other = lib.members.register_member("Molly Bloom")

    lib.loans.create_loan(member.id, book.id)
    with pytest.raises(LibraryError, match="not available"):
        lib.loans.create_loan(other.id, book.id)
    assert lib.books.get_book_stock(book.id) == 0


def test_create_loan_unknown_member(lib, book):
    with pytest.raises(LibraryError, match="Member not found or inactive with ID: 99"):
        lib.loans.create_loan(99, book.id)


def test_create_loan_unknown_book(lib, member):
    with pytest.raises(LibraryError, match="Book not found with ID: 42"):
        lib.loans.create_loan(member.id, 42)


def test_create_loan_inactive_member(lib, book, member):
    lib.members.deactivate_member(member.id)
    with pytest.raises(LibraryError, match="inactive"):
        lib.loans.create_loan(member.id, book.id)
    assert lib.books.get_book_stock(book.id) == 2


def test_create_loan_deleted_member(lib, book, member):
    lib.members.remove_member(member.id)
    with pytest.raises(LibraryError, match="inactive"):
        lib.loans.create_loan(member.id, book.id)


@pytest.mark.parametrize("member_id, book_id", [(0, 1), (1, -3), (None, 1)])
def test_create_loan_invalid_ids(lib, member_id, book_id):
    with pytest.raises(LibraryError):
        lib.loans.create_loan(member_id, book_id)


def test_failed_insert_restores_stock(lib, book, member, monkeypatch):
    def broken_create(loan):
        raise LibraryError("Failed to create loan row")

    monkeypatch.setattr(lib.loan_repo, "create", broken_create)

    with pytest.raises(LibraryError, match="Failed to create loan"):
        lib.loans.create_loan(member.id, book.id)
    assert lib.books.get_book_stock(book.id) == 2


# ------------------------- Borrowing limits ------------------------- #

def test_regular_member_limited_to_three_loans(lib, member):
    books = _add_books(lib, 4)
    for b in books[:3]:
        lib.loans.create_loan(member.id, b.id)

    assert lib.loans.get_active_loan_count(member.id) == 3
    assert lib.loans.can_member_borrow_more(member.id) is False
    with pytest.raises(LibraryError, match="Member has reached borrowing limit"):
        lib.loans.create_loan(member.id, books[3].id)
    assert lib.books.get_book_stock(books[3].id) == 1


def test_premium_member_limited_to_five_loans(lib):
    member = lib.members.register_member_with_role("Stephen Dedalus", "PREMIUM", "READ_WRITE")
    books = _add_books(lib, 6)
    for b in books[:5]:
        lib.loans.create_loan(member.id, b.id)

    assert lib.loans.get_member_loan_limit(member.id) == 5
    with pytest.raises(LibraryError, match="borrowing limit"):
        lib.loans.create_loan(member.id, books[5].id)


def test_returning_a_loan_frees_a_slot(lib, member):
    books = _add_books(lib, 4)
    loans = [lib.loans.create_loan(member.id, b.id) for b in books[:3]]

    lib.loans.return_loan(loans[0].id)
    loan = lib.loans.create_loan(member.id, books[3].id)
    assert loan.id is not None
    assert lib.loans.get_active_loan_count(member.id) == 3


def test_upgrade_raises_limit(lib, member):
    books = _add_books(lib, 4)
    for b in books[:3]:
        lib.loans.create_loan(member.id, b.id)

    lib.members.upgrade_to_premium(member.id)
    assert lib.loans.can_member_borrow_more(member.id) is True
    lib.loans.create_loan(member.id, books[3].id)
    assert lib.loans.get_active_loan_count(member.id) == 4


def test_loan_limit_for_unknown_member_is_zero(lib):
    assert lib.loans.get_member_loan_limit(123) == 0
    assert lib.loans.can_member_borrow_more(123) is False
    assert lib.loans.can_member_borrow_more(0) is False


# ------------------------- Returns ------------------------- #

def test_return_loan_increments_stock_and_records_date(lib, book, member, clock):
    loan = lib.loans.create_loan(member.id, book.id)
    clock.advance(3)

    returned = lib.loans.return_loan(loan.id)

    assert returned.returned is True
    assert returned.return_date == clock()
    assert lib.books.get_book_stock(book.id) == 2
    assert lib.loans.has_active_loans(member.id) is False


def test_return_twice_is_rejected(lib, book, member):
    loan = lib.loans.create_loan(member.id, book.id)
    lib.loans.return_loan(loan.id)

    with pytest.raises(LibraryError, match="Book has already been returned"):
        lib.loans.return_loan(loan.id)
    assert lib.books.get_book_stock(book.id) == 2


def test_return_unknown_loan(lib):
    with pytest.raises(LibraryError, match="Loan not found with ID: 7"):
        lib.loans.return_loan(7)


def test_return_book_by_member_and_book(lib, book, member):
    loan = lib.loans.create_loan(member.id, book.id)

    returned = lib.loans.return_book(member.id, book.id)
    assert returned.id == loan.id
    assert returned.returned is True


def test_return_book_without_active_loan(lib, book, member):
    with pytest.raises(LibraryError, match=f"No active loan found for member {member.id} and book {book.id}"):
        lib.loans.return_book(member.id, book.id)


# ------------------------- Extensions ------------------------- #

def test_extend_loan_moves_due_date(lib, book, member):
    loan = lib.loans.create_loan(member.id, book.id)
    extended = lib.loans.extend_loan(loan.id, 7)
    assert extended.date_due == loan.date_due + timedelta(days=7)
    assert lib.loans.find_loan_by_id(loan.id).date_due == extended.date_due


def test_extend_loan_rejects_bad_input(lib, book, member):
    loan = lib.loans.create_loan(member.id, book.id)
    with pytest.raises(LibraryError, match="Additional days must be positive"):
        lib.loans.extend_loan(loan.id, 0)

    lib.loans.return_loan(loan.id)
    with pytest.raises(LibraryError, match="Cannot extend a returned loan"):
        lib.loans.extend_loan(loan.id, 3)


# ------------------------- Overdue & fines ------------------------- #

def test_overdue_loans_follow_the_clock(lib, book, member, clock):
    loan = lib.loans.create_loan(member.id, book.id)

    clock.advance(14)
    assert lib.loans.get_overdue_loans() == []
    assert [l.id for l in lib.loans.get_loans_due_today()] == [loan.id]

    clock.advance(1)
    assert [l.id for l in lib.loans.get_overdue_loans()] == [loan.id]
    assert lib.get_statistics()["overdue_loans"] == 1

    lib.loans.return_loan(loan.id)
    assert lib.loans.get_overdue_loans() == []


def test_fine_for_late_return(lib, book, member, clock):
    loan = lib.loans.create_loan(member.id, book.id)
    clock.advance(14 + 4)
    lib.loans.return_loan(loan.id)

    assert lib.loans.calculate_fine(loan.id) == pytest.approx(2.0)


def test_no_fine_when_returned_on_due_date(lib, book, member, clock):
    loan = lib.loans.create_loan(member.id, book.id)
    clock.advance(14)
    lib.loans.return_loan(loan.id)

    assert lib.loans.calculate_fine(loan.id) == 0.0


def test_no_fine_while_loan_is_open(lib, book, member, clock):
    loan = lib.loans.create_loan(member.id, book.id)
    clock.advance(30)
    assert lib.loans.calculate_fine(loan.id) == 0.0


def test_fine_unknown_loan(lib):
    with pytest.raises(LibraryError, match="Loan not found"):
        lib.loans.calculate_fine(5)


@pytest.mark.parametrize(
    "due, returned, expected",
    [
        (date(2024, 1, 10), None, 0.0),
        (date(2024, 1, 10), date(2024, 1, 9), 0.0),
        (date(2024, 1, 10), date(2024, 1, 10), 0.0),
        (date(2024, 1, 10), date(2024, 1, 11), 0.5),
        (date(2024, 1, 10), date(2024, 2, 9), 15.0),
    ],
)
def test_calculate_fine(due, returned, expected):
    assert calculate_fine(due, returned, 0.50) == pytest.approx(expected)


# ------------------------- Queries ------------------------- #

def test_loans_by_member_and_book(lib, book, member):
    other = lib.members.register_member("Molly Bloom")
    first = lib.loans.create_loan(member.id, book.id)
    second = lib.loans.create_loan(other.id, book.id)
    lib.loans.return_loan(first.id)

    assert [l.id for l in lib.loans.get_loans_by_member(member.id)] == [first.id]
    assert lib.loans.get_active_loans_by_member(member.id) == []
    assert {l.id for l in lib.loans.get_loans_by_book(book.id)} == {first.id, second.id}
    assert [l.id for l in lib.loans.get_all_active_loans()] == [second.id]
    assert len(lib.loans.get_all_loans()) == 2


def test_loans_by_date_range(lib, book, member, clock):
    first = lib.loans.create_loan(member.id, book.id)
    clock.advance(10)
    second = lib.loans.create_loan(member.id, book.id)

    start = date(2024, 3, 5)
    assert [l.id for l in lib.loans.get_loans_by_date_range(start, start + timedelta(days=30))] == [second.id]
    assert len(lib.loans.get_loans_by_date_range(date(2024, 1, 1), date(2024, 12, 31))) == 2
    assert first.id in [l.id for l in lib.loans.get_loans_by_date_range(date(2024, 3, 1), date(2024, 3, 1))]

    with pytest.raises(LibraryError, match="Start date cannot be after end date"):
        lib.loans.get_loans_by_date_range(date(2024, 4, 1), date(2024, 3, 1))
    assert lib.loans.get_loans_by_date_range(None, date(2024, 3, 1)) == []


def test_invalid_ids_return_empty_results(lib):
    assert lib.loans.find_loan_by_id(0) is None
    assert lib.loans.get_loans_by_member(-1) == []
    assert lib.loans.get_loans_by_book(None) == []
    assert lib.loans.get_active_loan_count(0) == 0


# ------------------------- Loan entity ------------------------- #

def test_loan_rejects_due_date_before_loan_date():
    with pytest.raises(LibraryError, match="Date loaned cannot be after due date"):
        Loan(member_id=1, book_id=1, date_loaned=date(2024, 1, 10), date_due=date(2024, 1, 9))


def test_loan_parses_iso_strings():
    loan = Loan(member_id=1, book_id=2, date_loaned="2024-01-01", date_due="2024-01-15")
    assert loan.date_due == date(2024, 1, 15)
    assert loan.days_until_due(date(2024, 1, 10)) == 5
    assert loan.is_overdue(date(2024, 1, 16)) is True

    loan.mark_returned(date(2024, 1, 17))
    assert loan.is_overdue(date(2024, 1, 20)) is False
    assert loan.to_dict()["fine"] == pytest.approx(1.0)


def test_reading_back_a_new_loan_does_not_restore_stock(lib, book, member, monkeypatch):
    def broken_find(loan_id):
        raise LibraryError("Database query failed: disk I/O error")

    monkeypatch.setattr(lib.loan_repo, "find_by_id", broken_find)

    loan = lib.loans.create_loan(member.id, book.id)
    assert loan.id is not None
    assert lib.books.get_book_stock(book.id) == 1
    assert lib.loans.get_active_loan_count(member.id) == 1
