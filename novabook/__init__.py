"""NovaBook - Library Management Package

This package contains the core application modules including:
- Domain entities (user.py, member.py, book.py, loan.py, membership_request.py)
- Database layer (database.py, repositories.py)
- Business services (services/)
- Library facade wiring everything together (library.py)
- API endpoints (api.py)
- CLI interface (main.py)
"""

__version__ = "1.0.0"
