"""Pydantic schemas for API request/response."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from reviewgate.models.enums import CommentAuthorType, TokenKind, UserRole


# ===== Auth Schemas =====


class UserRegisterRequest(BaseModel):
    """User registration request."""

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole = UserRole.ENGINEER

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Validate username format."""
        if not v.replace("_", "").isalnum():
            raise ValueError("Username must contain only alphanumeric characters and underscores")
        return v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        """Administrators are provisioned by the identity system, not self-registered."""
        if v == UserRole.ADMIN:
            raise ValueError("Cannot self-register as admin")
        return v


class UserLoginRequest(BaseModel):
    """User login request."""

    username: str
    password: str


class SessionTokenResponse(BaseModel):
    """Session token response."""

    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """User response."""

    id: UUID
    username: str
    email: str
    role: UserRole
    created_at: datetime

    class Config:
        from_attributes = True


class ForgotPasswordRequest(BaseModel):
    """Request a password reset link."""

    email: EmailStr


class ResetPasswordRequest(BaseModel):
    """Redeem a password reset token."""

    email: EmailStr
    token: str = Field(..., min_length=1, max_length=256)
    password: str = Field(..., min_length=8)


# ===== Bearer Token Schemas =====


class IssuedTokenResponse(BaseModel):
    """Freshly issued bearer token (includes the secret - shown only once)."""

    id: UUID | None
    kind: TokenKind
    subject_id: UUID
    token: str
    url: str
    issued_at: datetime | None
    expires_at: datetime | None


class AccessTokenItem(BaseModel):
    """Issued token metadata (never includes the secret)."""

    id: UUID
    kind: TokenKind
    subject_id: UUID
    issued_at: datetime
    expires_at: datetime | None
    last_used_at: datetime | None
    consumed_at: datetime | None
    revoked_at: datetime | None

    class Config:
        from_attributes = True


class AccessTokenListResponse(BaseModel):
    """List of issued tokens for one subject."""

    tokens: list[AccessTokenItem]
    total: int


class ShareTokenValidateRequest(BaseModel):
    """Share-link validation request."""

    token: str = Field(..., min_length=1, max_length=256)


# ===== Project Schemas =====


class ProjectCreateRequest(BaseModel):
    """Create a project."""

    title: str = Field(..., min_length=1, max_length=200)
    revision_limit: int | None = Field(default=None, ge=0)
    client_folder_id: UUID | None = None
    client_email: EmailStr | None = None
    reminders_enabled: bool = False


class ProjectUpdateRequest(BaseModel):
    """Partial project update; an explicit ``revision_limit: null`` removes the limit."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    revision_limit: int | None = Field(default=None, ge=0)
    client_email: EmailStr | None = None
    reminders_enabled: bool | None = None


class ApproveRequest(BaseModel):
    """Approve one version of a project."""

    version_id: UUID


class ProjectVersionResponse(BaseModel):
    """Project version."""

    id: UUID
    version_number: int
    original_filename: str
    is_approved: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RevisionStateResponse(BaseModel):
    """Revision/approval state of a project."""

    approval_status: str
    revision_limit: int | None
    revisions_used: int
    revisions_remaining: int | None
    can_submit: bool
    approved_version_id: UUID | None
    approved_at: datetime | None
    approved_by: str | None


class ProjectResponse(BaseModel):
    """Full project view for owners and administrators."""

    id: UUID
    owner_id: UUID
    title: str
    client_folder_id: UUID | None
    client_email: str | None
    reminders_enabled: bool
    has_share_link: bool
    revision: RevisionStateResponse
    versions: list[ProjectVersionResponse]
    created_at: datetime


class ClientProjectView(BaseModel):
    """Reduced project view for bearer-token holders."""

    id: UUID
    title: str
    active_version_id: UUID | None
    revision: RevisionStateResponse
    versions: list[ProjectVersionResponse]


# ===== Comment Schemas =====


class CommentCreateRequest(BaseModel):
    """Leave feedback on a project.

    ``author_name`` is how a client signs the comment; engineers are always
    shown under their username.
    """

    content: str = Field(..., min_length=1, max_length=5000)
    version_id: UUID | None = None
    timestamp_seconds: float | None = Field(default=None, ge=0)
    author_name: str | None = Field(default=None, min_length=1, max_length=120)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment must not be blank")
        return v


class CommentResponse(BaseModel):
    """Comment on a project; author identifiers stay private."""

    id: UUID
    project_id: UUID
    version_id: UUID | None
    content: str
    timestamp_seconds: float | None
    author_type: CommentAuthorType
    author_name: str
    is_post_approval: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CommentListResponse(BaseModel):
    """Comments on a project."""

    comments: list[CommentResponse]
    total: int


# ===== Client Folder Schemas =====


class ClientFolderCreateRequest(BaseModel):
    """Create a client folder."""

    name: str = Field(..., min_length=1, max_length=200)
    client_email: EmailStr | None = None


class ClientFolderResponse(BaseModel):
    """Client folder."""

    id: UUID
    owner_id: UUID
    name: str
    client_email: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class ClientUploadResponse(BaseModel):
    """File in a client folder."""

    id: UUID
    folder_id: UUID
    uploaded_by_type: str
    original_filename: str
    display_name: str
    mime_type: str | None
    size_bytes: int | None
    created_at: datetime
    can_modify: bool = False


class ClientUploadListResponse(BaseModel):
    """Files in a client folder."""

    files: list[ClientUploadResponse]
    total: int


class UploadRenameRequest(BaseModel):
    """Rename an uploaded file."""

    display_name: str = Field(..., min_length=1, max_length=255)


# ===== Operations Schemas =====


class ReminderSweepResponse(BaseModel):
    """Result of a reminder sweep."""

    processed: int
