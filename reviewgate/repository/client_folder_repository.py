"""Client folder repository for database operations."""
from uuid import UUID

from sqlalchemy import select, delete

from reviewgate.models.client_folder import ClientFolder, ClientUpload
from .base import BaseRepository


class ClientFolderRepository(BaseRepository):
    """Repository for ClientFolder and ClientUpload operations."""

    async def create(
        self, owner_id: UUID, name: str, client_email: str | None = None
    ) -> ClientFolder:
        """Create a new client folder.

        Raises:
            DatabaseConnectionException: If database connection fails
            DatabaseOperationException: If database operation fails
        """
        folder = ClientFolder(owner_id=owner_id, name=name, client_email=client_email)
        return await self._insert(folder)

    async def get_by_id(self, folder_id: UUID) -> ClientFolder | None:
        result = await self._execute(
            select(ClientFolder)
            .where(ClientFolder.id == folder_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_owner_id(self, folder_id: UUID) -> UUID | None:
        result = await self._execute(
            select(ClientFolder.owner_id).where(ClientFolder.id == folder_id)
        )
        return result.scalar_one_or_none()

    # ----- Uploads -----

    async def create_upload(
        self,
        folder_id: UUID,
        uploaded_by_type: str,
        uploaded_by_identifier: str,
        original_filename: str,
        storage_key: str,
        mime_type: str | None = None,
        size_bytes: int | None = None,
    ) -> ClientUpload:
        """Record a file placed in a folder.

        Args:
            folder_id: Folder UUID
            uploaded_by_type: ``producer`` or ``client``
            uploaded_by_identifier: User id for producers, access token id for clients
            original_filename: Name the file was uploaded with
            storage_key: Blob store key
            mime_type: Content type reported by the uploader
            size_bytes: Payload size

        Returns:
            Created ClientUpload object
        """
        upload = ClientUpload(
            folder_id=folder_id,
            uploaded_by_type=uploaded_by_type,
            uploaded_by_identifier=uploaded_by_identifier,
            original_filename=original_filename,
            display_name=original_filename,
            storage_key=storage_key,
            mime_type=mime_type,
            size_bytes=size_bytes,
        )
        return await self._insert(upload)

    async def get_upload(self, upload_id: UUID) -> ClientUpload | None:
        result = await self._execute(
            select(ClientUpload)
            .where(ClientUpload.id == upload_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_uploads(self, folder_id: UUID) -> list[ClientUpload]:
        """List every file in a folder, newest first."""
        result = await self._execute(
            select(ClientUpload)
            .where(ClientUpload.folder_id == folder_id)
            .order_by(ClientUpload.created_at.desc(), ClientUpload.id.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def rename_upload(self, upload_id: UUID, display_name: str) -> ClientUpload | None:
        upload = await self.get_upload(upload_id)
        if upload is None:
            return None
        upload.display_name = display_name
        await self._flush()
        return upload

    async def delete_upload(self, upload_id: UUID) -> bool:
        """Delete an upload record.

        Returns:
            True if deleted, False if not found
        """
        result = await self._execute(
            delete(ClientUpload)
            .where(ClientUpload.id == upload_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
