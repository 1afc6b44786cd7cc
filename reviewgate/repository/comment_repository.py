"""Comment repository for database operations."""
from uuid import UUID

from sqlalchemy import select, or_

from reviewgate.models.comment import ProjectComment
from .base import BaseRepository


class CommentRepository(BaseRepository):
    """Repository for ProjectComment operations."""

    async def create(
        self,
        project_id: UUID,
        content: str,
        author_type: str,
        author_name: str,
        version_id: UUID | None = None,
        timestamp_seconds: float | None = None,
        author_user_id: UUID | None = None,
        author_client_identifier: str | None = None,
        is_post_approval: bool = False,
    ) -> ProjectComment:
        """Record a comment.

        Raises:
            DatabaseConnectionException: If database connection fails
            DatabaseOperationException: If database operation fails
        """
        comment = ProjectComment(
            project_id=project_id,
            version_id=version_id,
            content=content,
            timestamp_seconds=timestamp_seconds,
            author_type=author_type,
            author_name=author_name,
            author_user_id=author_user_id,
            author_client_identifier=author_client_identifier,
            is_post_approval=is_post_approval,
        )
        return await self._insert(comment)

    async def list_for_project(
        self, project_id: UUID, version_id: UUID | None = None
    ) -> list[ProjectComment]:
        """List a project's comments in media order.

        With ``version_id`` only that version's comments and the project-wide
        ones (no version) are returned.
        """
        query = select(ProjectComment).where(ProjectComment.project_id == project_id)
        if version_id is not None:
            query = query.where(
                or_(ProjectComment.version_id == version_id, ProjectComment.version_id.is_(None))
            )
        result = await self._execute(
            query.order_by(
                ProjectComment.timestamp_seconds.asc().nulls_last(),
                ProjectComment.created_at,
                ProjectComment.id,
            )
        )
        return list(result.scalars().all())
