"""Shared enums for models."""
from enum import Enum


class UserRole(str, Enum):
    """Role carried by an authenticated session."""
    ENGINEER = "engineer"
    CLIENT = "client"
    ADMIN = "admin"


class TokenKind(str, Enum):
    """Bearer token kinds."""
    PASSWORD_RESET = "password_reset"
    CLIENT_FOLDER_ACCESS = "client_folder_access"
    PROJECT_REVIEW_LINK = "project_review_link"
    PROJECT_SHARE_TOKEN = "project_share_token"


class ApprovalStatus(str, Enum):
    """Project approval state."""
    PENDING = "pending"
    APPROVED = "approved"


class UploaderType(str, Enum):
    """Who put a file into a client folder."""
    PRODUCER = "producer"
    CLIENT = "client"


class CommentAuthorType(str, Enum):
    """Who left a comment on a project."""
    ENGINEER = "engineer"
    CLIENT = "client"
