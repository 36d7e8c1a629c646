"""SQLite repositories for the library entities.

Each repository encapsulates the SQL for one table and maps rows to the
domain classes. Every call opens its own connection, runs one statement,
commits and closes the connection again; there is no transaction spanning
several calls.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

import novabook.database as database
from novabook.book import Book
from novabook.enums import RequestStatus
from novabook.errors import LibraryError
from novabook.loan import Loan
from novabook.member import Member
from novabook.membership_request import MembershipRequest
from novabook.user import User

logger = logging.getLogger(__name__)


class _SQLiteRepository:
    """Shared plumbing: run one statement per connection and translate sqlite3 errors."""

    def _query(self, sql: str, params: Sequence[Any] = (), error: str = "Database query failed") -> List[Dict[str, Any]]:
        conn = database.get_db_connection()
        try:
            rows = conn.execute(sql, params).fetchall()
            return [dict(row) for row in rows]
        except sqlite3.Error as e:
            logger.error(f"{error}: {e}")
            raise LibraryError(f"{error}: {e}") from e
        finally:
            conn.close()

    def _query_one(self, sql: str, params: Sequence[Any] = (), error: str = "Database query failed") -> Optional[Dict[str, Any]]:
        rows = self._query(sql, params, error)
        return rows[0] if rows else None

    def _scalar(self, sql: str, params: Sequence[Any] = (), error: str = "Database query failed") -> int:
        conn = database.get_db_connection()
        try:
            row = conn.execute(sql, params).fetchone()
            return row[0] if row and row[0] is not None else 0
        except sqlite3.Error as e:
            logger.error(f"{error}: {e}")
            raise LibraryError(f"{error}: {e}") from e
        finally:
            conn.close()

    def _execute(self, sql: str, params: Sequence[Any] = (), error: str = "Database update failed") -> sqlite3.Cursor:
        conn = database.get_db_connection()
        try:
            cursor = conn.execute(sql, params)
            conn.commit()
            return cursor
        except sqlite3.IntegrityError as e:
            logger.warning(f"{error}: {e}")
            raise LibraryError(f"{error}: {e}") from e
        except sqlite3.Error as e:
            logger.error(f"{error}: {e}")
            raise LibraryError(f"{error}: {e}") from e
        finally:
            conn.close()


class UserRepository(_SQLiteRepository):
    def create(self, user: User) -> User:
        cursor = self._execute(
            "INSERT INTO users (name, email, password, phone, role, access_level, active, deleted) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (user.name, user.email, user.password, user.phone, user.role.value,
             user.access_level.value, user.active, user.deleted),
            error="Failed to create user",
        )
        return self.find_by_id(cursor.lastrowid)

    def update(self, user: User) -> User:
        cursor = self._execute(
            "UPDATE users SET name=?, email=?, password=?, phone=?, role=?, access_level=?, active=?, deleted=?, "
            "updated_at=CURRENT_TIMESTAMP WHERE id=?",
            (user.name, user.email, user.password, user.phone, user.role.value,
             user.access_level.value, user.active, user.deleted, user.id),
            error="Failed to update user",
        )
        if cursor.rowcount != 1:
            raise LibraryError(f"User not found with ID: {user.id}")
        return self.find_by_id(user.id)

    def find_by_id(self, user_id: int) -> Optional[User]:
        row = self._query_one("SELECT * FROM users WHERE id = ?", (user_id,))
        return User.from_dict(row) if row else None

    def find_by_email(self, email: str) -> Optional[User]:
        row = self._query_one("SELECT * FROM users WHERE email = ?", (email.strip().lower(),))
        return User.from_dict(row) if row else None

    def find_active_by_email(self, email: str) -> Optional[User]:
        row = self._query_one(
            "SELECT * FROM users WHERE email = ? AND active = 1 AND deleted = 0", (email.strip().lower(),)
        )
        return User.from_dict(row) if row else None

    def find_all(self) -> List[User]:
        return [User.from_dict(r) for r in self._query("SELECT * FROM users WHERE deleted = 0 ORDER BY name")]

    def find_all_active(self) -> List[User]:
        rows = self._query("SELECT * FROM users WHERE active = 1 AND deleted = 0 ORDER BY name")
        return [User.from_dict(r) for r in rows]

    def user_exists(self, email: str) -> bool:
        return self._scalar("SELECT COUNT(*) FROM users WHERE email = ?", (email.strip().lower(),)) > 0

    def count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM users")

    def soft_delete(self, user_id: int) -> bool:
        cursor = self._execute(
            "UPDATE users SET deleted = 1, active = 0, updated_at=CURRENT_TIMESTAMP WHERE id = ?",
            (user_id,), error="Failed to delete user",
        )
        return cursor.rowcount > 0


class MemberRepository(_SQLiteRepository):
    def create(self, member: Member) -> Member:
        cursor = self._execute(
            "INSERT INTO member (name, user_id, role, access_level, active, deleted) VALUES (?, ?, ?, ?, ?, ?)",
            (member.name, member.user_id, member.role.value, member.access_level.value,
             member.active, member.deleted),
            error="Failed to create member",
        )
        return self.find_by_id(cursor.lastrowid)

    def update(self, member: Member) -> Member:
        cursor = self._execute(
            "UPDATE member SET name=?, user_id=?, role=?, access_level=?, active=?, deleted=?, "
            "updated_at=CURRENT_TIMESTAMP WHERE id=?",
            (member.name, member.user_id, member.role.value, member.access_level.value,
             member.active, member.deleted, member.id),
            error="Failed to update member",
        )
        if cursor.rowcount != 1:
            raise LibraryError(f"Member not found with ID: {member.id}")
        return self.find_by_id(member.id)

    def find_by_id(self, member_id: int) -> Optional[Member]:
        row = self._query_one("SELECT * FROM member WHERE id = ?", (member_id,))
        return Member.from_dict(row) if row else None

    def find_active_by_id(self, member_id: int) -> Optional[Member]:
        row = self._query_one("SELECT * FROM member WHERE id = ? AND active = 1 AND deleted = 0", (member_id,))
        return Member.from_dict(row) if row else None

    def find_by_user_id(self, user_id: int) -> Optional[Member]:
        row = self._query_one(
            "SELECT * FROM member WHERE user_id = ? AND deleted = 0 ORDER BY id DESC LIMIT 1", (user_id,)
        )
        return Member.from_dict(row) if row else None

    def find_by_name(self, name: str) -> List[Member]:
        rows = self._query(
            "SELECT * FROM member WHERE LOWER(name) LIKE LOWER(?) AND deleted = 0 ORDER BY name", (f"%{name.strip()}%",)
        )
        return [Member.from_dict(r) for r in rows]

    def find_all(self) -> List[Member]:
        return [Member.from_dict(r) for r in self._query("SELECT * FROM member WHERE deleted = 0 ORDER BY name")]

    def find_all_active(self) -> List[Member]:
        rows = self._query("SELECT * FROM member WHERE active = 1 AND deleted = 0 ORDER BY name")
        return [Member.from_dict(r) for r in rows]

    def can_member_borrow(self, member_id: int) -> bool:
        row = self._query_one("SELECT active, deleted FROM member WHERE id = ?", (member_id,))
        return bool(row) and bool(row["active"]) and not bool(row["deleted"])

    def set_active(self, member_id: int, active: bool) -> None:
        cursor = self._execute(
            "UPDATE member SET active = ?, updated_at=CURRENT_TIMESTAMP WHERE id = ?",
            (active, member_id), error="Failed to change member status",
        )
        if cursor.rowcount != 1:
            raise LibraryError(f"Member not found with ID: {member_id}")

    def soft_delete(self, member_id: int) -> bool:
        cursor = self._execute(
            "UPDATE member SET deleted = 1, active = 0, updated_at=CURRENT_TIMESTAMP WHERE id = ?",
            (member_id,), error="Failed to delete member",
        )
        return cursor.rowcount > 0

    def count(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM member WHERE deleted = 0")


class BookRepository(_SQLiteRepository):
    def create(self, book: Book) -> Book:
        cursor = self._execute(
            "INSERT INTO book (isbn, title, author, stock) VALUES (?, ?, ?, ?)",
            (book.isbn, book.title, book.author, book.stock),
            error="Failed to create book",
        )
        return self.find_by_id(cursor.lastrowid)

    def update(self, book: Book) -> Book:
        cursor = self._execute(
            "UPDATE book SET isbn=?, title=?, author=?, stock=?, updated_at=CURRENT_TIMESTAMP WHERE id=?",
            (book.isbn, book.title, book.author, book.stock, book.id),
            error="Failed to update book",
        )
        if cursor.rowcount != 1:
            raise LibraryError(f"Book not found with ID: {book.id}")
        return self.find_by_id(book.id)

    def find_by_id(self, book_id: int) -> Optional[Book]:
        row = self._query_one("SELECT * FROM book WHERE id = ?", (book_id,))
        return Book.from_dict(row) if row else None

    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        row = self._query_one("SELECT * FROM book WHERE isbn = ?", (isbn,))
        return Book.from_dict(row) if row else None

    def find_by_title(self, title: str) -> List[Book]:
        rows = self._query(
            "SELECT * FROM book WHERE LOWER(title) LIKE LOWER(?) ORDER BY title", (f"%{title.strip()}%",)
        )
        return [Book.from_dict(r) for r in rows]

    def find_by_author(self, author: str) -> List[Book]:
        rows = self._query(
            "SELECT * FROM book WHERE LOWER(author) LIKE LOWER(?) ORDER BY title", (f"%{author.strip()}%",)
        )
        return [Book.from_dict(r) for r in rows]

    def find_available(self) -> List[Book]:
        return [Book.from_dict(r) for r in self._query("SELECT * FROM book WHERE stock > 0 ORDER BY title")]

    def find_all(self) -> List[Book]:
        return [Book.from_dict(r) for r in self._query("SELECT * FROM book ORDER BY title")]

    def book_exists(self, isbn: str) -> bool:
        return self._scalar("SELECT COUNT(*) FROM book WHERE isbn = ?", (isbn,)) > 0

    def update_stock(self, book_id: int, stock: int) -> None:
        cursor = self._execute(
            "UPDATE book SET stock = ?, updated_at=CURRENT_TIMESTAMP WHERE id = ?",
            (stock, book_id), error="Failed to update stock",
        )
        if cursor.rowcount != 1:
            raise LibraryError(f"Book not found with ID: {book_id}")

    def decrease_stock(self, book_id: int) -> bool:
        """Take one copy off the shelf. Returns False when no copy was left."""
        cursor = self._execute(
            "UPDATE book SET stock = stock - 1, updated_at=CURRENT_TIMESTAMP WHERE id = ? AND stock > 0",
            (book_id,), error="Failed to decrease stock",
        )
        return cursor.rowcount == 1

    def increase_stock(self, book_id: int) -> None:
        cursor = self._execute(
            "UPDATE book SET stock = stock + 1, updated_at=CURRENT_TIMESTAMP WHERE id = ?",
            (book_id,), error="Failed to increase stock",
        )
        if cursor.rowcount != 1:
            raise LibraryError(f"Book not found with ID: {book_id}")

    def delete(self, book_id: int) -> bool:
        cursor = self._execute("DELETE FROM book WHERE id = ?", (book_id,), error="Failed to delete book")
        return cursor.rowcount > 0

    def totals(self) -> Dict[str, int]:
        return {
            "total_titles": self._scalar("SELECT COUNT(*) FROM book"),
            "total_copies": self._scalar("SELECT SUM(stock) FROM book"),
        }


class LoanRepository(_SQLiteRepository):
    def create(self, loan: Loan) -> Loan:
        cursor = self._execute(
            "INSERT INTO loan (member_id, book_id, date_loaned, date_due, returned, return_date) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (loan.member_id, loan.book_id, loan.date_loaned.isoformat(), loan.date_due.isoformat(),
             loan.returned, loan.return_date.isoformat() if loan.return_date else None),
            error="Failed to create loan",
        )
        # No re-read: once the row exists the caller must not undo the stock change
        loan.id = cursor.lastrowid
        return loan

    def update(self, loan: Loan) -> Loan:
        cursor = self._execute(
            "UPDATE loan SET member_id=?, book_id=?, date_loaned=?, date_due=?, returned=?, return_date=?, "
            "updated_at=CURRENT_TIMESTAMP WHERE id=?",
            (loan.member_id, loan.book_id, loan.date_loaned.isoformat(), loan.date_due.isoformat(),
             loan.returned, loan.return_date.isoformat() if loan.return_date else None, loan.id),
            error="Failed to update loan",
        )
        if cursor.rowcount != 1:
            raise LibraryError(f"Loan not found with ID: {loan.id}")
        return self.find_by_id(loan.id)

    def mark_as_returned(self, loan_id: int, return_date: date) -> None:
        # returned = 0 in the WHERE clause keeps a second return from touching the row
        cursor = self._execute(
            "UPDATE loan SET returned = 1, return_date = ?, updated_at=CURRENT_TIMESTAMP "
            "WHERE id = ? AND returned = 0",
            (return_date.isoformat(), loan_id), error="Failed to mark loan as returned",
        )
        if cursor.rowcount != 1:
            raise LibraryError("Failed to mark loan as returned - loan may not exist or is already returned")

    def find_by_id(self, loan_id: int) -> Optional[Loan]:
        row = self._query_one("SELECT * FROM loan WHERE id = ?", (loan_id,))
        return Loan.from_dict(row) if row else None

    def _find(self, where: str = "", params: Sequence[Any] = ()) -> List[Loan]:
        sql = "SELECT * FROM loan"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY date_loaned, id"
        return [Loan.from_dict(r) for r in self._query(sql, params)]

    def find_by_member_id(self, member_id: int) -> List[Loan]:
        return self._find("member_id = ?", (member_id,))

    def find_by_book_id(self, book_id: int) -> List[Loan]:
        return self._find("book_id = ?", (book_id,))

    def find_active_by_member_id(self, member_id: int) -> List[Loan]:
        return self._find("member_id = ? AND returned = 0", (member_id,))

    def find_active_by_book_id(self, book_id: int) -> List[Loan]:
        return self._find("book_id = ? AND returned = 0", (book_id,))

    def find_overdue(self, today: date) -> List[Loan]:
        return self._find("date_due < ? AND returned = 0", (today.isoformat(),))

    def find_due_on(self, due_date: date) -> List[Loan]:
        return self._find("date_due = ? AND returned = 0", (due_date.isoformat(),))

    def find_by_date_range(self, start: date, end: date) -> List[Loan]:
        return self._find("date_loaned BETWEEN ? AND ?", (start.isoformat(), end.isoformat()))

    def find_all_active(self) -> List[Loan]:
        return self._find("returned = 0")

    def find_all(self) -> List[Loan]:
        return self._find()

    def count_active_by_member(self, member_id: int) -> int:
        return self._scalar("SELECT COUNT(*) FROM loan WHERE member_id = ? AND returned = 0", (member_id,))

    def count_active(self) -> int:
        return self._scalar("SELECT COUNT(*) FROM loan WHERE returned = 0")

    def count_overdue(self, today: date) -> int:
        return self._scalar("SELECT COUNT(*) FROM loan WHERE date_due < ? AND returned = 0", (today.isoformat(),))


class MembershipRequestRepository(_SQLiteRepository):
    def create(self, request: MembershipRequest) -> MembershipRequest:
        cursor = self._execute(
            "INSERT INTO membership_request (user_id, user_name, user_email, status, request_reason, requested_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (request.user_id, request.user_name, request.user_email, request.status.value,
             request.request_reason, request.requested_at),
            error="Failed to create membership request",
        )
        return self.find_by_id(cursor.lastrowid)

    def update(self, request: MembershipRequest) -> MembershipRequest:
        cursor = self._execute(
            "UPDATE membership_request SET status = ?, approved_by_user_id = ?, processed_at = ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (request.status.value, request.approved_by_user_id, request.processed_at, request.id),
            error="Failed to update membership request",
        )
        if cursor.rowcount != 1:
            raise LibraryError("Membership request not found")
        return self.find_by_id(request.id)

    def find_by_id(self, request_id: int) -> Optional[MembershipRequest]:
        row = self._query_one("SELECT * FROM membership_request WHERE id = ?", (request_id,))
        return MembershipRequest.from_dict(row) if row else None

    def find_pending_by_user_id(self, user_id: int) -> Optional[MembershipRequest]:
        row = self._query_one(
            "SELECT * FROM membership_request WHERE user_id = ? AND status = ? ORDER BY requested_at DESC, id DESC LIMIT 1",
            (user_id, RequestStatus.PENDING.value),
        )
        return MembershipRequest.from_dict(row) if row else None

    def find_all(self) -> List[MembershipRequest]:
        rows = self._query("SELECT * FROM membership_request ORDER BY requested_at DESC, id DESC")
        return [MembershipRequest.from_dict(r) for r in rows]

    def find_all_pending(self) -> List[MembershipRequest]:
        rows = self._query(
            "SELECT * FROM membership_request WHERE status = ? ORDER BY requested_at ASC, id ASC",
            (RequestStatus.PENDING.value,),
        )
        return [MembershipRequest.from_dict(r) for r in rows]

    def has_pending_request(self, user_id: int) -> bool:
        return self._scalar(
            "SELECT COUNT(*) FROM membership_request WHERE user_id = ? AND status = ?",
            (user_id, RequestStatus.PENDING.value),
        ) > 0
