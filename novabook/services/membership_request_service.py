import logging
from typing import List, Optional

from novabook.enums import RequestStatus
from novabook.errors import LibraryError
from novabook.member import Member
from novabook.membership_request import MembershipRequest, utc_now
from novabook.repositories import MemberRepository, MembershipRequestRepository, UserRepository
from novabook.validators import is_valid_id, validate_id

logger = logging.getLogger(__name__)


class MembershipRequestService:
    """Applications for membership. Approving one turns the applicant into a REGULAR member."""

    def __init__(self, request_repo: MembershipRequestRepository, member_repo: MemberRepository,
                 user_repo: UserRepository) -> None:
        self.request_repo = request_repo
        self.member_repo = member_repo
        self.user_repo = user_repo

    def create_request(self, user_id: int, user_name: str, user_email: str,
                       reason: Optional[str] = None) -> MembershipRequest:
        validate_id(user_id, "User ID")
        if self.user_repo.find_by_id(user_id) is None:
            raise LibraryError(f"User not found with ID: {user_id}")
        if self.request_repo.has_pending_request(user_id):
            raise LibraryError("User already has a pending membership request")

        request = MembershipRequest(user_id=user_id, user_name=user_name, user_email=user_email,
                                    request_reason=reason)
        request = self.request_repo.create(request)
        logger.info(f"Membership request {request.id} created for user {user_id}")
        return request

    def get_all_pending_requests(self) -> List[MembershipRequest]:
        return self.request_repo.find_all_pending()

    def get_all_requests(self) -> List[MembershipRequest]:
        return self.request_repo.find_all()

    def find_request_by_id(self, request_id: int) -> Optional[MembershipRequest]:
        if not is_valid_id(request_id):
            return None
        return self.request_repo.find_by_id(request_id)

    def has_pending_request(self, user_id: int) -> bool:
        if not is_valid_id(user_id):
            return False
        return self.request_repo.has_pending_request(user_id)

    def approve_request(self, request_id: int, approved_by_user_id: int) -> Member:
        request = self._pending_request(request_id, approved_by_user_id)

        member = Member(name=request.user_name, user_id=request.user_id, active=True)
        member = self.member_repo.create(member)

        self._close(request, RequestStatus.APPROVED, approved_by_user_id)
        logger.info(f"Membership request {request_id} approved by {approved_by_user_id}; member {member.id} created")
        return member

    def reject_request(self, request_id: int, rejected_by_user_id: int) -> MembershipRequest:
        request = self._pending_request(request_id, rejected_by_user_id)
        updated = self._close(request, RequestStatus.REJECTED, rejected_by_user_id)
        logger.info(f"Membership request {request_id} rejected by {rejected_by_user_id}")
        return updated

    def _pending_request(self, request_id: int, admin_user_id: int) -> MembershipRequest:
        validate_id(request_id, "Request ID")
        validate_id(admin_user_id, "Admin user ID")

        admin = self.user_repo.find_by_id(admin_user_id)
        if admin is None or not admin.is_admin or not admin.can_log_in:
            raise LibraryError("Only an active administrator can process membership requests")

        request = self.request_repo.find_by_id(request_id)
        if request is None:
            raise LibraryError("Membership request not found")
        if not request.is_pending:
            raise LibraryError("Request has already been processed")
        return request

    def _close(self, request: MembershipRequest, status: RequestStatus, admin_user_id: int) -> MembershipRequest:
        request.status = status
        request.approved_by_user_id = admin_user_id
        request.processed_at = utc_now()
        return self.request_repo.update(request)
