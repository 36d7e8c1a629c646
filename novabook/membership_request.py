from __future__ import annotations

from datetime import datetime, timezone

from novabook.enums import RequestStatus
from novabook.validators import parse_enum


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class MembershipRequest:
    """A user's application to become a member, approved or rejected by an admin."""

    def __init__(self, user_id: int, user_name: str, user_email: str, request_reason: str | None = None,
                 status: RequestStatus | str = RequestStatus.PENDING, approved_by_user_id: int | None = None,
                 requested_at: str | None = None, processed_at: str | None = None, id: int | None = None,
                 created_at: str | None = None, updated_at: str | None = None) -> None:
        self.id = id
        self.user_id = user_id
        self.user_name = user_name
        self.user_email = user_email
        self.request_reason = request_reason
        self.status = parse_enum(RequestStatus, status, "request status")
        self.approved_by_user_id = approved_by_user_id
        self.requested_at = requested_at or utc_now()
        self.processed_at = processed_at
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    @property
    def is_approved(self) -> bool:
        return self.status == RequestStatus.APPROVED

    @property
    def is_rejected(self) -> bool:
        return self.status == RequestStatus.REJECTED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_email": self.user_email,
            "status": self.status.value,
            "request_reason": self.request_reason,
            "approved_by_user_id": self.approved_by_user_id,
            "requested_at": self.requested_at,
            "processed_at": self.processed_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @staticmethod
    def from_dict(data: dict) -> "MembershipRequest":
        return MembershipRequest(
            id=data.get("id"),
            user_id=data["user_id"],
            user_name=data["user_name"],
            user_email=data["user_email"],
            request_reason=data.get("request_reason"),
            status=data.get("status") or RequestStatus.PENDING,
            approved_by_user_id=data.get("approved_by_user_id"),
            requested_at=data.get("requested_at"),
            processed_at=data.get("processed_at"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
