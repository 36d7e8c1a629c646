"""NovaBook - Services Package

This package contains the business services sitting between the
repositories and the CLI / API surfaces:
- Book catalogue and stock management
- Member registration and tiers
- User accounts and authentication
- Loans, borrowing limits and fines
- Membership requests
"""

from novabook.services.book_service import BookService
from novabook.services.loan_service import LoanService
from novabook.services.member_service import MemberService
from novabook.services.membership_request_service import MembershipRequestService
from novabook.services.user_service import UserService

__all__ = ["BookService", "LoanService", "MemberService", "MembershipRequestService", "UserService"]
