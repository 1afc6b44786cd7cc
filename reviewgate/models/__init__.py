"""Database models."""
from reviewgate.models.user import User
from reviewgate.models.access_token import AccessToken
from reviewgate.models.client_folder import ClientFolder, ClientUpload
from reviewgate.models.project import Project, ProjectVersion
from reviewgate.models.comment import ProjectComment

__all__ = [
    "User",
    "AccessToken",
    "ClientFolder",
    "ClientUpload",
    "Project",
    "ProjectVersion",
    "ProjectComment",
]
