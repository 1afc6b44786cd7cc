"""Principals, actions and authorization decisions."""
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from reviewgate.common.exceptions import (
    ForbiddenException,
    NotFoundException,
    UnauthorizedException,
)
from reviewgate.domain.token_policy import ResolvedToken
from reviewgate.models.enums import TokenKind, UserRole


class ResourceType(str, Enum):
    """Resource types guarded by the authorization engine."""
    PROJECT = "project"
    CLIENT_FOLDER = "client_folder"


class Action(str, Enum):
    """Actions a principal may request on a resource."""
    VIEW = "view"
    COMMENT = "comment"
    APPROVE = "approve"
    LIST_FILES = "list_files"
    UPLOAD_FILE = "upload_file"
    MODIFY_FILE = "modify_file"
    MANAGE = "manage"


class EffectiveRole(str, Enum):
    """Capability under which an allowed request runs."""
    ADMIN = "admin"
    OWNER = "owner"
    TOKEN_HOLDER = "token_holder"


class DenialReason(str, Enum):
    """Why a request was denied."""
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"


# Token kinds that can grant an action on a resource type, tried in order.
# Actions missing from the table (MANAGE in particular) are never token-grantable.
# A client folder link also opens the projects filed in that folder, but only
# a review link may approve. The share token is read-only.
TOKEN_GRANTS: dict[ResourceType, dict[Action, tuple[TokenKind, ...]]] = {
    ResourceType.PROJECT: {
        Action.VIEW: (
            TokenKind.PROJECT_REVIEW_LINK,
            TokenKind.CLIENT_FOLDER_ACCESS,
            TokenKind.PROJECT_SHARE_TOKEN,
        ),
        Action.COMMENT: (TokenKind.PROJECT_REVIEW_LINK, TokenKind.CLIENT_FOLDER_ACCESS),
        Action.APPROVE: (TokenKind.PROJECT_REVIEW_LINK,),
    },
    ResourceType.CLIENT_FOLDER: {
        Action.LIST_FILES: (TokenKind.CLIENT_FOLDER_ACCESS,),
        Action.UPLOAD_FILE: (TokenKind.CLIENT_FOLDER_ACCESS,),
        Action.MODIFY_FILE: (TokenKind.CLIENT_FOLDER_ACCESS,),
    },
}


def grantable_kinds(resource_type: ResourceType, action: Action) -> tuple[TokenKind, ...]:
    """Token kinds that may authorize ``action`` on ``resource_type``."""
    return TOKEN_GRANTS.get(resource_type, {}).get(action, ())


@dataclass(frozen=True)
class SessionPrincipal:
    """Authenticated user of the identity system."""

    user_id: UUID
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


@dataclass(frozen=True)
class TokenHolder:
    """Caller presenting a bearer secret and nothing else."""

    secret: str = field(repr=False)


@dataclass(frozen=True)
class Anonymous:
    """Caller with neither a session nor a bearer secret."""


Principal = SessionPrincipal | TokenHolder | Anonymous


@dataclass(frozen=True)
class ResourceRef:
    """Reference to a guarded resource; ownership is always looked up, never supplied."""

    type: ResourceType
    id: UUID


@dataclass(frozen=True)
class ResourceBinding:
    """Ownership and folder placement of a resource, as loaded from its row."""

    owner_id: UUID
    client_folder_id: UUID | None

    def expected_subject(self, kind: TokenKind, resource: ResourceRef) -> UUID | None:
        """Record a token of ``kind`` must be bound to for it to open ``resource``."""
        if kind == TokenKind.CLIENT_FOLDER_ACCESS:
            return self.client_folder_id
        return resource.id


@dataclass(frozen=True)
class Decision:
    """Outcome of an authorization check."""

    allowed: bool
    effective_role: EffectiveRole | None = None
    denied_reason: DenialReason | None = None
    principal: Principal | None = None
    token: ResolvedToken | None = None
    subject_id: UUID | None = None

    @classmethod
    def allow(
        cls,
        role: EffectiveRole,
        principal: Principal,
        token: ResolvedToken | None = None,
    ) -> "Decision":
        return cls(
            allowed=True,
            effective_role=role,
            principal=principal,
            token=token,
            subject_id=token.subject_id if token else None,
        )

    @classmethod
    def deny(cls, reason: DenialReason, principal: Principal | None = None) -> "Decision":
        return cls(allowed=False, denied_reason=reason, principal=principal)

    def require(self) -> "Decision":
        """Return self when allowed, otherwise raise the matching exception."""
        if self.allowed:
            return self
        if self.denied_reason == DenialReason.UNAUTHENTICATED:
            raise UnauthorizedException("Authentication required")
        if self.denied_reason == DenialReason.NOT_FOUND:
            raise NotFoundException("Resource not found")
        raise ForbiddenException("Access denied")

    def actor_label(self) -> str:
        """Short description of who acted, recorded on approvals."""
        if isinstance(self.principal, SessionPrincipal):
            return f"{self.effective_role.value}:{self.principal.user_id}"
        if self.token is not None:
            return f"{self.token.kind.value}:{self.token.holder_identity}"
        return "unknown"
