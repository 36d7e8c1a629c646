import logging
import os
import sqlite3

from dotenv import load_dotenv

from novabook.config import settings

# Make sure .env is loaded before DATABASE_FILE is resolved, whatever the import order.
load_dotenv()

logger = logging.getLogger(__name__)

# Database file. Priority:
# 1) LIBRARY_DB_FILE from the environment at import time
# 2) settings.database_file default
# Library(db_file=...) overrides it afterwards for the whole process.
DATABASE_FILE = os.environ.get("LIBRARY_DB_FILE") or settings.database_file


def get_db_connection() -> sqlite3.Connection:
    """Open a new connection to the SQLite database.

    Every repository call opens its own connection and closes it when done.
    """
    conn = sqlite3.connect(DATABASE_FILE)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def create_tables() -> None:
    """Create the required tables if they do not exist yet."""
    conn = get_db_connection()
    cursor = conn.cursor()
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT NOT NULL UNIQUE,
            password TEXT NOT NULL,
            phone TEXT NOT NULL DEFAULT '',
            role TEXT NOT NULL DEFAULT 'USER',
            access_level TEXT NOT NULL DEFAULT 'READ_WRITE',
            active BOOLEAN NOT NULL DEFAULT 1,
            deleted BOOLEAN NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS member (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            user_id INTEGER,
            role TEXT NOT NULL DEFAULT 'REGULAR',
            access_level TEXT NOT NULL DEFAULT 'READ_WRITE',
            active BOOLEAN NOT NULL DEFAULT 1,
            deleted BOOLEAN NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS book (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            isbn TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            author TEXT NOT NULL,
            stock INTEGER NOT NULL DEFAULT 0 CHECK(stock >= 0),
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)

    # Loans reference books without ON DELETE CASCADE: a book with loans cannot be dropped.
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS loan (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id INTEGER NOT NULL,
            book_id INTEGER NOT NULL,
            date_loaned DATE NOT NULL,
            date_due DATE NOT NULL,
            returned BOOLEAN NOT NULL DEFAULT 0,
            return_date DATE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (member_id) REFERENCES member(id),
            FOREIGN KEY (book_id) REFERENCES book(id)
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS membership_request (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER NOT NULL,
            user_name TEXT NOT NULL,
            user_email TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'PENDING',
            request_reason TEXT,
            approved_by_user_id INTEGER,
            requested_at TIMESTAMP,
            processed_at TIMESTAMP,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (user_id) REFERENCES users(id)
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_member_user_id ON member(user_id)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_book_title ON book(title)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_book_author ON book(author)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_loan_member_returned ON loan(member_id, returned)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_loan_book_returned ON loan(book_id, returned)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_loan_date_due ON loan(date_due)")
    cursor.execute("CREATE INDEX IF NOT EXISTS idx_request_user_status ON membership_request(user_id, status)")

    conn.commit()
    conn.close()


def initialize_database() -> None:
    """Initialise the database, creating the tables when needed."""
    create_tables()
    logger.debug(f"Database ready at {DATABASE_FILE}")
