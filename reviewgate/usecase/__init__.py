"""Usecase layer for application services."""
from reviewgate.usecase.auth_usecase import AuthUsecase
from reviewgate.usecase.access_token_usecase import AccessTokenUsecase
from reviewgate.usecase.authorization_usecase import AuthorizationUsecase
from reviewgate.usecase.revision_usecase import RevisionUsecase
from reviewgate.usecase.password_reset_usecase import PasswordResetUsecase
from reviewgate.usecase.project_usecase import ProjectUsecase
from reviewgate.usecase.client_folder_usecase import ClientFolderUsecase
from reviewgate.usecase.reminder_usecase import ReminderUsecase
from reviewgate.usecase.comment_usecase import CommentUsecase

__all__ = [
    "AuthUsecase",
    "AccessTokenUsecase",
    "AuthorizationUsecase",
    "RevisionUsecase",
    "PasswordResetUsecase",
    "ProjectUsecase",
    "ClientFolderUsecase",
    "ReminderUsecase",
    "CommentUsecase",
]
