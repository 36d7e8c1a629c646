import logging
import os
import subprocess
import sys
import webbrowser
from datetime import date
from functools import wraps
from typing import Optional

import typer

import novabook.database as database
from novabook.config import settings
from novabook.errors import LibraryError
from novabook.library import Library
from novabook.ui_helpers import (
    BOOK_COLUMNS,
    LOAN_COLUMNS,
    MEMBER_COLUMNS,
    REQUEST_COLUMNS,
    print_item_result,
    print_list_result,
    print_stats_result,
    set_output_mode,
)

logger = logging.getLogger(__name__)


class LibraryManager:
    """Lazily built Library shared by the commands of one CLI process."""

    _instance: Optional[Library] = None
    _db_file_snapshot: Optional[str] = None

    @classmethod
    def get_instance(cls) -> Library:
        current_db = database.DATABASE_FILE
        # Rebuild when the database file changes (e.g. one database per test)
        if cls._instance is None or current_db != cls._db_file_snapshot:
            cls._instance = Library(db_file=current_db)
            cls._db_file_snapshot = current_db
            logger.debug(f"Library instance created for {current_db}")
        return cls._instance


def handle_library_errors(func):
    """Print LibraryError as 'Error: <message>' and exit with status 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except LibraryError as e:
            print(f"Error: {e}")
            raise typer.Exit(code=1)
    return wrapper


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise LibraryError(f"Invalid date (expected YYYY-MM-DD): {value}")


def _loan_serializer(lib: Library):
    """Serialize loans against the library clock so "overdue" matches the overdue query."""
    today = lib.today()
    return lambda loan: loan.to_dict(today=today)


# --- Typer CLI ---
app = typer.Typer(help="NovaBook library management CLI")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (e.g. output mode)."""
    logging.basicConfig(level=settings.log_level)
    if output:
        set_output_mode(output)


# ------------------------- Books ------------------------- #
@app.command("add-book")
@handle_library_errors
def cli_add_book(
    isbn: str,
    title: str,
    author: str,
    stock: int = typer.Option(1, "--stock", "-s", help="Initial number of copies"),
):
    """Add a book to the catalogue."""
    book = LibraryManager.get_instance().books.add_book(isbn, title, author, stock)
    print(f"Successfully added: {book.title} by {book.author} (ID {book.id})")


@app.command("list-books")
def cli_list_books(available: bool = typer.Option(False, "--available", help="Only books with stock left")):
    """List all books."""
    books_service = LibraryManager.get_instance().books
    books = books_service.get_available_books() if available else books_service.get_all_books()
    print_list_result(books, BOOK_COLUMNS, "Books", "No books in library.")


@app.command("find-book")
def cli_find_book(isbn: str):
    """Find a book by ISBN and show its details."""
    book = LibraryManager.get_instance().books.find_book_by_isbn(isbn)
    if book is None:
        print(f"Book with ISBN {isbn} not found.")
        raise typer.Exit(code=1)
    print_item_result(book, "Book Found")


@app.command("search")
def cli_search(
    query: str = typer.Argument(..., help="Search text"),
    author: bool = typer.Option(False, "--author", "-a", help="Search authors instead of titles"),
):
    """Search books by title (or by author with --author)."""
    books_service = LibraryManager.get_instance().books
    if author:
        results = books_service.search_books_by_author(query)
    else:
        results = books_service.search_books_by_title(query)
    print_list_result(results, BOOK_COLUMNS, f"Results for '{query}'", "No matching books.")


@app.command("add-stock")
@handle_library_errors
def cli_add_stock(book_id: int, quantity: int):
    """Add copies of an existing book."""
    book = LibraryManager.get_instance().books.add_stock(book_id, quantity)
    print(f"Stock for '{book.title}' is now {book.stock}")


@app.command("remove-book")
@handle_library_errors
def cli_remove_book(book_id: int):
    """Remove a book that has no active loans."""
    LibraryManager.get_instance().books.remove_book(book_id)
    print(f"Book {book_id} has been removed.")


# ------------------------- Members ------------------------- #
@app.command("add-member")
@handle_library_errors
def cli_add_member(
    name: str,
    premium: bool = typer.Option(False, "--premium", help="Register as a PREMIUM member"),
):
    """Register a new member."""
    members = LibraryManager.get_instance().members
    if premium:
        member = members.register_member_with_role(name, "PREMIUM", "READ_WRITE")
    else:
        member = members.register_member(name)
    print(f"Member registered: {member.name} (ID {member.id}, {member.role.value})")


@app.command("list-members")
def cli_list_members(active: bool = typer.Option(False, "--active", help="Only active members")):
    """List members."""
    members = LibraryManager.get_instance().members
    result = members.get_all_active_members() if active else members.get_all_members()
    print_list_result(result, MEMBER_COLUMNS, "Members", "No members registered.")


@app.command("upgrade-member")
@handle_library_errors
def cli_upgrade_member(member_id: int):
    """Promote a member to PREMIUM."""
    member = LibraryManager.get_instance().members.upgrade_to_premium(member_id)
    print(f"Member {member.id} is now {member.role.value}")


@app.command("downgrade-member")
@handle_library_errors
def cli_downgrade_member(member_id: int):
    """Move a member back to REGULAR."""
    member = LibraryManager.get_instance().members.downgrade_to_regular(member_id)
    print(f"Member {member.id} is now {member.role.value}")


@app.command("deactivate-member")
@handle_library_errors
def cli_deactivate_member(member_id: int):
    """Stop a member from borrowing."""
    LibraryManager.get_instance().members.deactivate_member(member_id)
    print(f"Member {member_id} deactivated.")


# ------------------------- Loans ------------------------- #
@app.command("borrow")
@handle_library_errors
def cli_borrow(
    member_id: int,
    book_id: int,
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Loan period in days"),
):
    """Lend a book to a member."""
    loan = LibraryManager.get_instance().loans.create_loan(member_id, book_id, days)
    print(f"Loan {loan.id} created, due {loan.date_due.isoformat()}")


@app.command("return")
@handle_library_errors
def cli_return(loan_id: int):
    """Return a borrowed book."""
    loan = LibraryManager.get_instance().loans.return_loan(loan_id)
    print(f"Loan {loan.id} returned. Fine: ${loan.fine(settings.fine_per_day):.2f}")


@app.command("extend")
@handle_library_errors
def cli_extend(loan_id: int, days: int):
    """Push a loan's due date back."""
    loan = LibraryManager.get_instance().loans.extend_loan(loan_id, days)
    print(f"Loan {loan.id} now due {loan.date_due.isoformat()}")


@app.command("loans")
@handle_library_errors
def cli_loans(
    member_id: Optional[int] = typer.Option(None, "--member", "-m", help="Only loans of this member"),
    active: bool = typer.Option(False, "--active", help="Only unreturned loans"),
    start: Optional[str] = typer.Option(None, "--from", help="Loaned on or after (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--to", help="Loaned on or before (YYYY-MM-DD)"),
):
    """List loans."""
    lib = LibraryManager.get_instance()
    loans_service = lib.loans
    if start or end:
        # A missing bound leaves that side of the range open
        loans = loans_service.get_loans_by_date_range(_parse_date(start) if start else date.min,
                                                      _parse_date(end) if end else date.max)
    elif member_id is not None:
        if active:
            loans = loans_service.get_active_loans_by_member(member_id)
        else:
            loans = loans_service.get_loans_by_member(member_id)
    elif active:
        loans = loans_service.get_all_active_loans()
    else:
        loans = loans_service.get_all_loans()
    print_list_result(loans, LOAN_COLUMNS, "Loans", "No loans found.", serialize=_loan_serializer(lib))


@app.command("overdue")
def cli_overdue():
    """List unreturned loans past their due date."""
    lib = LibraryManager.get_instance()
    loans = lib.loans.get_overdue_loans()
    print_list_result(loans, LOAN_COLUMNS, "Overdue Loans", "No overdue loans.", serialize=_loan_serializer(lib))


@app.command("fine")
@handle_library_errors
def cli_fine(loan_id: int):
    """Show the fine owed for a loan."""
    amount = LibraryManager.get_instance().loans.calculate_fine(loan_id)
    print(f"Fine for loan {loan_id}: ${amount:.2f}")


# ------------------------- Users & membership ------------------------- #
@app.command("register")
@handle_library_errors
def cli_register(
    name: str,
    email: str,
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
    phone: str = typer.Option(..., "--phone", help="Contact phone number"),
):
    """Create a user account."""
    user = LibraryManager.get_instance().users.register(name, email, password, phone)
    print(f"User registered: {user.email} (ID {user.id})")


@app.command("request-membership")
@handle_library_errors
def cli_request_membership(
    email: str,
    reason: Optional[str] = typer.Option(None, "--reason", "-r", help="Why membership is requested"),
):
    """Apply for membership on behalf of a registered user."""
    lib = LibraryManager.get_instance()
    user = lib.users.find_user_by_email(email)
    if user is None:
        raise LibraryError(f"User not found with email: {email}")
    request = lib.requests.create_request(user.id, user.name, user.email, reason)
    print(f"Membership request {request.id} submitted for {user.email}")


@app.command("requests")
def cli_requests(all_requests: bool = typer.Option(False, "--all", help="Include processed requests")):
    """List membership requests (pending only by default)."""
    service = LibraryManager.get_instance().requests
    result = service.get_all_requests() if all_requests else service.get_all_pending_requests()
    print_list_result(result, REQUEST_COLUMNS, "Membership Requests", "No membership requests.")


@app.command("approve")
@handle_library_errors
def cli_approve(request_id: int, admin_id: int = typer.Option(..., "--admin", help="ID of the approving administrator")):
    """Approve a pending membership request."""
    member = LibraryManager.get_instance().requests.approve_request(request_id, admin_id)
    print(f"Request {request_id} approved; member {member.id} created")


@app.command("reject")
@handle_library_errors
def cli_reject(request_id: int, admin_id: int = typer.Option(..., "--admin", help="ID of the rejecting administrator")):
    """Reject a pending membership request."""
    LibraryManager.get_instance().requests.reject_request(request_id, admin_id)
    print(f"Request {request_id} rejected")


# ------------------------- Misc ------------------------- #
@app.command("stats")
def cli_stats():
    """Show library statistics."""
    print_stats_result(LibraryManager.get_instance().get_statistics())


@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: API_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (default: API_PORT)"),
    open_browser: bool = typer.Option(False, "--open", help="Open the API docs in a browser"),
):
    """Start the HTTP API with Uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/docs"
    print(f"Starting API on {url}")
    if open_browser:
        webbrowser.open(url)

    args = [
        sys.executable,
        "-m", "uvicorn",
        "novabook.api:app",
        "--host", host,
        "--port", str(port),
    ]
    env = dict(os.environ, LIBRARY_DB_FILE=database.DATABASE_FILE)
    try:
        subprocess.run(args, env=env, check=False)
    except KeyboardInterrupt:
        print("Server stopped.")


if __name__ == "__main__":
    app()
