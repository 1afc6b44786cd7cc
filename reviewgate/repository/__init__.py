"""Repository layer for database operations."""
from reviewgate.repository.user_repository import UserRepository
from reviewgate.repository.access_token_repository import AccessTokenRepository
from reviewgate.repository.project_repository import ProjectRepository
from reviewgate.repository.client_folder_repository import ClientFolderRepository
from reviewgate.repository.comment_repository import CommentRepository

__all__ = [
    "UserRepository",
    "AccessTokenRepository",
    "ProjectRepository",
    "ClientFolderRepository",
    "CommentRepository",
]
