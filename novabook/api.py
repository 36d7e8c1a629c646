import logging
import os
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Security
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from novabook.config import settings
from novabook.database import get_db_connection
from novabook.errors import LibraryError
from novabook.library import Library

logger = logging.getLogger(__name__)

# The database file can be overridden per process (tests reload this module)
library = Library(db_file=os.environ.get("LIBRARY_DB_FILE") or None)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level)
    logger.info(f"{settings.app_name} API using {library.db_file}")
    yield


app = FastAPI(title=f"{settings.app_name} API", version=settings.app_version, lifespan=lifespan)


@app.exception_handler(LibraryError)
async def library_error_handler(request: Request, exc: LibraryError):
    logger.warning(f"{request.method} {request.url.path} rejected: {exc}")
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# --- API key security ---
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key(api_key: Optional[str] = Security(api_key_header)):
    """Dependency that checks the X-API-Key header."""
    if api_key == settings.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Could not validate credentials")


# --- Models ---
class BookCreateModel(BaseModel):
    isbn: str
    title: str
    author: str
    stock: int = Field(1, ge=0)


class StockModel(BaseModel):
    quantity: int


class MemberCreateModel(BaseModel):
    name: str
    role: str = "REGULAR"
    access_level: str = "READ_WRITE"
    user_id: Optional[int] = None


class LoanCreateModel(BaseModel):
    member_id: int
    book_id: int
    loan_period_days: Optional[int] = None


class LoanReturnModel(BaseModel):
    member_id: int
    book_id: int


class LoanExtendModel(BaseModel):
    additional_days: int


class UserRegisterModel(BaseModel):
    name: str
    email: str
    password: str
    phone: str


class LoginModel(BaseModel):
    email: str
    password: str


class PasswordChangeModel(BaseModel):
    old_password: str
    new_password: str


class MembershipRequestCreateModel(BaseModel):
    user_id: int
    reason: Optional[str] = None


class ProcessRequestModel(BaseModel):
    admin_user_id: int


class StatsModel(BaseModel):
    total_titles: int
    total_copies: int
    total_members: int
    active_loans: int
    overdue_loans: int


class FineModel(BaseModel):
    loan_id: int
    fine: float


def _found(entity, label: str, entity_id: Any):
    if entity is None:
        raise HTTPException(status_code=404, detail=f"{label} not found with ID: {entity_id}")
    return entity


def _loan_dict(loan) -> Dict[str, Any]:
    return loan.to_dict(today=library.today())


@app.get("/health")
def health():
    """Lightweight health check with a quick database round trip."""
    db_ok = True
    try:
        conn = get_db_connection()
        try:
            conn.execute("SELECT 1")
        finally:
            conn.close()
    except Exception:
        logger.exception("Health check could not reach the database")
        db_ok = False
    return {
        "status": "healthy" if db_ok else "degraded",
        "time": datetime.now(timezone.utc).isoformat(),
        "db": db_ok,
        "version": settings.app_version,
    }


@app.get("/stats", response_model=StatsModel)
def get_library_stats():
    return library.get_statistics()


# ------------------------- Books ------------------------- #
@app.get("/books")
def get_books(
    title: Optional[str] = Query(None, description="Title contains"),
    author: Optional[str] = Query(None, description="Author contains"),
    available: bool = Query(False, description="Only books with stock left"),
) -> List[Dict[str, Any]]:
    if title:
        books = library.books.search_books_by_title(title)
    elif author:
        books = library.books.search_books_by_author(author)
    elif available:
        books = library.books.get_available_books()
    else:
        books = library.books.get_all_books()
    return [b.to_dict() for b in books]


@app.get("/books/isbn/{isbn}")
def get_book_by_isbn(isbn: str):
    book = library.books.find_book_by_isbn(isbn)
    if book is None:
        raise HTTPException(status_code=404, detail=f"Book not found with ISBN: {isbn}")
    return book.to_dict()


@app.get("/books/{book_id}")
def get_book(book_id: int):
    return _found(library.books.find_book_by_id(book_id), "Book", book_id).to_dict()


@app.post("/books", status_code=201, dependencies=[Depends(get_api_key)])
def add_book(payload: BookCreateModel):
    book = library.books.add_book(payload.isbn, payload.title, payload.author, payload.stock)
    return book.to_dict()


@app.post("/books/{book_id}/stock", dependencies=[Depends(get_api_key)])
def add_stock(book_id: int, payload: StockModel):
    _found(library.books.find_book_by_id(book_id), "Book", book_id)
    return library.books.add_stock(book_id, payload.quantity).to_dict()


@app.delete("/books/{book_id}", status_code=204, dependencies=[Depends(get_api_key)])
def delete_book(book_id: int):
    _found(library.books.find_book_by_id(book_id), "Book", book_id)
    library.books.remove_book(book_id)


# ------------------------- Members ------------------------- #
@app.get("/members")
def get_members(active: bool = Query(False), name: Optional[str] = Query(None)) -> List[Dict[str, Any]]:
    if name:
        members = library.members.search_members_by_name(name)
    elif active:
        members = library.members.get_all_active_members()
    else:
        members = library.members.get_all_members()
    return [m.to_dict() for m in members]


@app.get("/members/{member_id}")
def get_member(member_id: int):
    return _found(library.members.find_member_by_id(member_id), "Member", member_id).to_dict()


@app.post("/members", status_code=201, dependencies=[Depends(get_api_key)])
def add_member(payload: MemberCreateModel):
    member = library.members.register_member_with_role(payload.name, payload.role, payload.access_level,
                                                       payload.user_id)
    return member.to_dict()


@app.post("/members/{member_id}/upgrade", dependencies=[Depends(get_api_key)])
def upgrade_member(member_id: int):
    _found(library.members.find_member_by_id(member_id), "Member", member_id)
    return library.members.upgrade_to_premium(member_id).to_dict()


@app.post("/members/{member_id}/downgrade", dependencies=[Depends(get_api_key)])
def downgrade_member(member_id: int):
    _found(library.members.find_member_by_id(member_id), "Member", member_id)
    return library.members.downgrade_to_regular(member_id).to_dict()


@app.post("/members/{member_id}/activate", dependencies=[Depends(get_api_key)])
def activate_member(member_id: int):
    _found(library.members.find_member_by_id(member_id), "Member", member_id)
    library.members.activate_member(member_id)
    return library.members.find_member_by_id(member_id).to_dict()


@app.post("/members/{member_id}/deactivate", dependencies=[Depends(get_api_key)])
def deactivate_member(member_id: int):
    _found(library.members.find_member_by_id(member_id), "Member", member_id)
    library.members.deactivate_member(member_id)
    return library.members.find_member_by_id(member_id).to_dict()


@app.delete("/members/{member_id}", status_code=204, dependencies=[Depends(get_api_key)])
def delete_member(member_id: int):
    _found(library.members.find_member_by_id(member_id), "Member", member_id)
    library.members.remove_member(member_id)


@app.get("/members/{member_id}/loans")
def get_member_loans(member_id: int, active: bool = Query(False)) -> List[Dict[str, Any]]:
    _found(library.members.find_member_by_id(member_id), "Member", member_id)
    if active:
        loans = library.loans.get_active_loans_by_member(member_id)
    else:
        loans = library.loans.get_loans_by_member(member_id)
    return [_loan_dict(l) for l in loans]


# ------------------------- Loans ------------------------- #
@app.get("/loans")
def get_loans(
    active: bool = Query(False),
    start: Optional[date] = Query(None, description="Loaned on or after"),
    end: Optional[date] = Query(None, description="Loaned on or before"),
) -> List[Dict[str, Any]]:
    if start or end:
        loans = library.loans.get_loans_by_date_range(start or date.min, end or date.max)
    elif active:
        loans = library.loans.get_all_active_loans()
    else:
        loans = library.loans.get_all_loans()
    return [_loan_dict(l) for l in loans]


@app.get("/loans/overdue")
def get_overdue_loans() -> List[Dict[str, Any]]:
    return [_loan_dict(l) for l in library.loans.get_overdue_loans()]


@app.get("/loans/due-today")
def get_loans_due_today() -> List[Dict[str, Any]]:
    return [_loan_dict(l) for l in library.loans.get_loans_due_today()]


@app.get("/loans/{loan_id}")
def get_loan(loan_id: int):
    return _loan_dict(_found(library.loans.find_loan_by_id(loan_id), "Loan", loan_id))


@app.post("/loans", status_code=201, dependencies=[Depends(get_api_key)])
def create_loan(payload: LoanCreateModel):
    loan = library.loans.create_loan(payload.member_id, payload.book_id, payload.loan_period_days)
    return _loan_dict(loan)


@app.post("/loans/return", dependencies=[Depends(get_api_key)])
def return_book(payload: LoanReturnModel):
    return _loan_dict(library.loans.return_book(payload.member_id, payload.book_id))


@app.post("/loans/{loan_id}/return", dependencies=[Depends(get_api_key)])
def return_loan(loan_id: int):
    _found(library.loans.find_loan_by_id(loan_id), "Loan", loan_id)
    return _loan_dict(library.loans.return_loan(loan_id))


@app.post("/loans/{loan_id}/extend", dependencies=[Depends(get_api_key)])
def extend_loan(loan_id: int, payload: LoanExtendModel):
    _found(library.loans.find_loan_by_id(loan_id), "Loan", loan_id)
    return _loan_dict(library.loans.extend_loan(loan_id, payload.additional_days))


@app.get("/loans/{loan_id}/fine", response_model=FineModel)
def get_loan_fine(loan_id: int):
    _found(library.loans.find_loan_by_id(loan_id), "Loan", loan_id)
    return {"loan_id": loan_id, "fine": library.loans.calculate_fine(loan_id)}


# ------------------------- Users ------------------------- #
@app.post("/users/register", status_code=201, dependencies=[Depends(get_api_key)])
def register_user(payload: UserRegisterModel):
    user = library.users.register(payload.name, payload.email, payload.password, payload.phone)
    return user.to_dict()


@app.post("/auth/login")
def login(payload: LoginModel):
    try:
        user = library.users.authenticate(payload.email, payload.password)
    except LibraryError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return user.to_dict()


@app.get("/users", dependencies=[Depends(get_api_key)])
def get_users(active: bool = Query(False)) -> List[Dict[str, Any]]:
    users = library.users.get_all_active_users() if active else library.users.get_all_users()
    return [u.to_dict() for u in users]


@app.get("/users/{user_id}", dependencies=[Depends(get_api_key)])
def get_user(user_id: int):
    return _found(library.users.find_user_by_id(user_id), "User", user_id).to_dict()


@app.post("/users/{user_id}/password", status_code=204, dependencies=[Depends(get_api_key)])
def change_password(user_id: int, payload: PasswordChangeModel):
    _found(library.users.find_user_by_id(user_id), "User", user_id)
    library.users.change_password(user_id, payload.old_password, payload.new_password)


# ------------------------- Membership requests ------------------------- #
@app.post("/membership-requests", status_code=201, dependencies=[Depends(get_api_key)])
def create_membership_request(payload: MembershipRequestCreateModel):
    user = _found(library.users.find_user_by_id(payload.user_id), "User", payload.user_id)
    request = library.requests.create_request(user.id, user.name, user.email, payload.reason)
    return request.to_dict()


@app.get("/membership-requests", dependencies=[Depends(get_api_key)])
def get_membership_requests(all_requests: bool = Query(False, alias="all")) -> List[Dict[str, Any]]:
    if all_requests:
        requests = library.requests.get_all_requests()
    else:
        requests = library.requests.get_all_pending_requests()
    return [r.to_dict() for r in requests]


@app.post("/membership-requests/{request_id}/approve", dependencies=[Depends(get_api_key)])
def approve_membership_request(request_id: int, payload: ProcessRequestModel):
    _found(library.requests.find_request_by_id(request_id), "Membership request", request_id)
    return library.requests.approve_request(request_id, payload.admin_user_id).to_dict()


@app.post("/membership-requests/{request_id}/reject", dependencies=[Depends(get_api_key)])
def reject_membership_request(request_id: int, payload: ProcessRequestModel):
    _found(library.requests.find_request_by_id(request_id), "Membership request", request_id)
    return library.requests.reject_request(request_id, payload.admin_user_id).to_dict()
