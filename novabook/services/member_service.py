import logging
from typing import List, Optional

from novabook.enums import AccessLevel, MemberRole
from novabook.errors import LibraryError
from novabook.member import Member
from novabook.repositories import MemberRepository
from novabook.validators import TextValidator, is_valid_id, parse_enum, validate_id

logger = logging.getLogger(__name__)


class MemberService:
    def __init__(self, repo: MemberRepository) -> None:
        self.repo = repo

    def register_member(self, name: str) -> Member:
        TextValidator.validate_name(name)
        member = self.repo.create(Member(name=name))
        logger.info(f"Member registered: {member.id} '{member.name}'")
        return member

    def register_member_with_role(self, name: str, role: str, access_level: str,
                                  user_id: Optional[int] = None) -> Member:
        TextValidator.validate_name(name)
        member = Member(
            name=name,
            role=parse_enum(MemberRole, role, "role"),
            access_level=parse_enum(AccessLevel, access_level, "access level"),
            user_id=user_id,
        )
        member = self.repo.create(member)
        logger.info(f"Member registered: {member.id} '{member.name}' as {member.role.value}")
        return member

    def update_member(self, member: Member) -> Member:
        if member is None or member.id is None:
            raise LibraryError("Member and member ID cannot be null")
        TextValidator.validate_name(member.name)
        return self.repo.update(member)

    def find_member_by_id(self, member_id: int) -> Optional[Member]:
        if not is_valid_id(member_id):
            return None
        return self.repo.find_by_id(member_id)

    def find_member_by_user_id(self, user_id: int) -> Optional[Member]:
        if not is_valid_id(user_id):
            return None
        return self.repo.find_by_user_id(user_id)

    def search_members_by_name(self, name: str) -> List[Member]:
        if name is None or not name.strip():
            return []
        return self.repo.find_by_name(name)

    def get_all_members(self) -> List[Member]:
        return self.repo.find_all()

    def get_all_active_members(self) -> List[Member]:
        return self.repo.find_all_active()

    def can_member_borrow(self, member_id: int) -> bool:
        if not is_valid_id(member_id):
            return False
        return self.repo.can_member_borrow(member_id)

    def activate_member(self, member_id: int) -> None:
        self._require(member_id)
        self.repo.set_active(member_id, True)
        logger.info(f"Member activated: {member_id}")

    def deactivate_member(self, member_id: int) -> None:
        self._require(member_id)
        self.repo.set_active(member_id, False)
        logger.info(f"Member deactivated: {member_id}")

    def upgrade_to_premium(self, member_id: int) -> Member:
        return self._change_role(member_id, MemberRole.PREMIUM)

    def downgrade_to_regular(self, member_id: int) -> Member:
        return self._change_role(member_id, MemberRole.REGULAR)

    def remove_member(self, member_id: int) -> None:
        """Soft-delete a member; the row and its loan history stay in place."""
        self._require(member_id)
        self.repo.soft_delete(member_id)
        logger.info(f"Member removed: {member_id}")

    def _change_role(self, member_id: int, role: MemberRole) -> Member:
        member = self._require(member_id)
        member.role = role
        updated = self.repo.update(member)
        logger.info(f"Member {member_id} is now {role.value}")
        return updated

    def _require(self, member_id: int) -> Member:
        validate_id(member_id, "Member ID")
        member = self.repo.find_by_id(member_id)
        if member is None:
            raise LibraryError(f"Member not found with ID: {member_id}")
        return member
