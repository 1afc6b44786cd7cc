"""Access token repository (the token store)."""
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update, and_, or_

from reviewgate.models.access_token import AccessToken
from .base import BaseRepository


def _usable(now: datetime):
    """SQL predicate matching tokens that are neither consumed, revoked nor expired."""
    return and_(
        AccessToken.consumed_at.is_(None),
        AccessToken.revoked_at.is_(None),
        or_(AccessToken.expires_at.is_(None), AccessToken.expires_at > now),
    )


class AccessTokenRepository(BaseRepository):
    """Repository for AccessToken model operations.

    Consumption and revocation are single conditional UPDATE statements; the
    returned row count tells the caller whether it won.
    """

    async def create(
        self,
        kind: str,
        subject_id: UUID,
        secret_digest: str,
        issued_at: datetime,
        expires_at: datetime | None,
        created_by_user_id: UUID | None = None,
    ) -> AccessToken:
        """Create a new token.

        Args:
            kind: Token kind
            subject_id: Id of the record the token is bound to
            secret_digest: SHA-256 digest of the secret
            issued_at: Issue time
            expires_at: Expiration datetime
            created_by_user_id: Issuing user, None for system-issued tokens

        Returns:
            Created AccessToken object

        Raises:
            DuplicateRecordException: If the digest already exists for this kind
            DatabaseConnectionException: If database connection fails
            DatabaseOperationException: If database operation fails
        """
        token = AccessToken(
            kind=kind,
            subject_id=subject_id,
            secret_digest=secret_digest,
            issued_at=issued_at,
            expires_at=expires_at,
            created_by_user_id=created_by_user_id,
        )
        return await self._insert(token, "Token digest collision detected")

    async def get_by_id(self, token_id: UUID) -> AccessToken | None:
        """Get token by ID."""
        result = await self._execute(
            select(AccessToken)
            .where(AccessToken.id == token_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_digest(self, kind: str, secret_digest: str) -> AccessToken | None:
        """Get token by kind and digest.

        Args:
            kind: Token kind
            secret_digest: Digest of the presented secret

        Returns:
            AccessToken object if found, None otherwise
        """
        result = await self._execute(
            select(AccessToken)
            .where(
                and_(
                    AccessToken.kind == kind,
                    AccessToken.secret_digest == secret_digest,
                )
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_subject(
        self, kind: str, subject_id: UUID, now: datetime | None = None
    ) -> list[AccessToken]:
        """List tokens of one kind bound to a subject, newest first.

        Args:
            kind: Token kind
            subject_id: Bound record id
            now: When given, only tokens still usable at this time are returned
        """
        query = select(AccessToken).where(
            and_(AccessToken.kind == kind, AccessToken.subject_id == subject_id)
        )
        if now is not None:
            query = query.where(_usable(now))
        result = await self._execute(
            query.order_by(AccessToken.issued_at.desc()).execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def invalidate_prior(
        self, kind: str, subject_id: UUID, now: datetime, single_use: bool
    ) -> int:
        """Invalidate every usable token of a kind bound to a subject.

        Single-use kinds are marked consumed, reusable kinds revoked.

        Returns:
            Number of tokens invalidated
        """
        column = "consumed_at" if single_use else "revoked_at"
        result = await self._execute(
            update(AccessToken)
            .where(
                and_(
                    AccessToken.kind == kind,
                    AccessToken.subject_id == subject_id,
                    _usable(now),
                )
            )
            .values({column: now})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def consume_if_unused(self, token_id: UUID, now: datetime) -> bool:
        """Atomically mark a token consumed.

        Returns:
            True if this call consumed the token, False if it was already
            consumed or revoked
        """
        result = await self._execute(
            update(AccessToken)
            .where(
                and_(
                    AccessToken.id == token_id,
                    AccessToken.consumed_at.is_(None),
                    AccessToken.revoked_at.is_(None),
                )
            )
            .values(consumed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def revoke_if_active(self, token_id: UUID, now: datetime) -> bool:
        """Set ``revoked_at`` unless already set.

        Returns:
            True if this call revoked the token
        """
        result = await self._execute(
            update(AccessToken)
            .where(and_(AccessToken.id == token_id, AccessToken.revoked_at.is_(None)))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def touch_last_used(self, token_id: UUID, now: datetime) -> None:
        """Update token's last used timestamp."""
        await self._execute(
            update(AccessToken)
            .where(AccessToken.id == token_id)
            .values(last_used_at=now)
            .execution_options(synchronize_session=False)
        )
