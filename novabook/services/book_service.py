import logging
from typing import List, Optional

from novabook.book import Book
from novabook.errors import LibraryError
from novabook.repositories import BookRepository, LoanRepository
from novabook.validators import ISBNValidator, is_valid_id, validate_book, validate_id, validate_stock

logger = logging.getLogger(__name__)


class BookService:
    """Catalogue management: registering titles, searching them and keeping stock counts."""

    def __init__(self, repo: BookRepository, loan_repo: LoanRepository) -> None:
        self.repo = repo
        self.loan_repo = loan_repo

    # ------------------------- Catalogue ------------------------- #
    def add_book(self, isbn: str, title: str, author: str, initial_stock: int = 1) -> Book:
        validate_book(isbn, title, author, initial_stock)
        if self.book_exists(isbn):
            raise LibraryError(f"Book already exists with ISBN: {ISBNValidator.normalize_isbn(isbn)}")

        book = self.repo.create(Book(isbn=isbn, title=title, author=author, stock=initial_stock))
        logger.info(f"Book added: {book.isbn} '{book.title}' (stock {book.stock})")
        return book

    def update_book(self, book: Book) -> Book:
        if book is None or book.id is None:
            raise LibraryError("Book and book ID cannot be null")
        validate_book(book.isbn, book.title, book.author, book.stock)
        book.isbn = ISBNValidator.normalize_isbn(book.isbn)

        existing = self.repo.find_by_isbn(book.isbn)
        if existing and existing.id != book.id:
            raise LibraryError(f"Book already exists with ISBN: {existing.isbn}")
        return self.repo.update(book)

    def remove_book(self, book_id: int) -> None:
        validate_id(book_id, "Book ID")
        if self.repo.find_by_id(book_id) is None:
            raise LibraryError(f"Book not found with ID: {book_id}")
        if self.loan_repo.find_active_by_book_id(book_id):
            raise LibraryError("Cannot remove a book with active loans")
        self.repo.delete(book_id)
        logger.info(f"Book removed: {book_id}")

    # ------------------------- Lookups ------------------------- #
    def find_book_by_id(self, book_id: int) -> Optional[Book]:
        if not is_valid_id(book_id):
            return None
        return self.repo.find_by_id(book_id)

    def find_book_by_isbn(self, isbn: str) -> Optional[Book]:
        if isbn is None or not isbn.strip():
            return None
        return self.repo.find_by_isbn(ISBNValidator.normalize_isbn(isbn))

    def search_books_by_title(self, title: str) -> List[Book]:
        if title is None or not title.strip():
            return []
        return self.repo.find_by_title(title)

    def search_books_by_author(self, author: str) -> List[Book]:
        if author is None or not author.strip():
            return []
        return self.repo.find_by_author(author)

    def get_all_books(self) -> List[Book]:
        return self.repo.find_all()

    def get_available_books(self) -> List[Book]:
        return self.repo.find_available()

    def is_book_available(self, book_id: int) -> bool:
        book = self.find_book_by_id(book_id)
        return book is not None and book.is_available

    def book_exists(self, isbn: str) -> bool:
        if isbn is None or not isbn.strip():
            return False
        return self.repo.book_exists(ISBNValidator.normalize_isbn(isbn))

    # ------------------------- Stock ------------------------- #
    def update_book_stock(self, book_id: int, new_stock: int) -> None:
        validate_id(book_id, "Book ID")
        validate_stock(new_stock)
        if self.repo.find_by_id(book_id) is None:
            raise LibraryError(f"Book not found with ID: {book_id}")
        self.repo.update_stock(book_id, new_stock)

    def add_stock(self, book_id: int, quantity: int) -> Book:
        validate_id(book_id, "Book ID")
        if quantity is None or quantity <= 0:
            raise LibraryError("Quantity must be positive")
        book = self.repo.find_by_id(book_id)
        if book is None:
            raise LibraryError(f"Book not found with ID: {book_id}")

        self.repo.update_stock(book_id, book.stock + quantity)
        logger.info(f"Stock for book {book_id} raised by {quantity}")
        return self.repo.find_by_id(book_id)

    def get_book_stock(self, book_id: int) -> int:
        book = self.find_book_by_id(book_id)
        return book.stock if book else 0
