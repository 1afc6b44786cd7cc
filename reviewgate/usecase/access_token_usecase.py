"""Access token usecase: issue, resolve, consume and revoke bearer tokens."""
import logging
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.clock import ensure_utc, utc_now
from reviewgate.common.config import settings
from reviewgate.common.exceptions import (
    AlreadyUsedException,
    ConflictException,
    ExpiredException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from reviewgate.domain import token_codec
from reviewgate.domain.principals import SessionPrincipal
from reviewgate.domain.token_codec import digest_secret, is_token_expired
from reviewgate.domain.token_policy import ResolvedToken, calculate_expiry, get_policy
from reviewgate.models.access_token import AccessToken
from reviewgate.models.enums import TokenKind
from reviewgate.repository.access_token_repository import AccessTokenRepository
from reviewgate.repository.client_folder_repository import ClientFolderRepository
from reviewgate.repository.exceptions import DuplicateRecordException
from reviewgate.repository.project_repository import ProjectRepository
from reviewgate.usecase.base import BaseUsecase

logger = logging.getLogger(__name__)

# One message for every resolution failure so callers cannot tell
# "never existed" from "revoked" or "bound elsewhere".
INVALID_TOKEN_MESSAGE = "Invalid or expired link"


@dataclass
class IssuedToken:
    """Result of ``issue``: the raw secret (shown only once) and the stored row."""

    secret: str = field(repr=False)
    token: AccessToken


class AccessTokenUsecase(BaseUsecase):
    """Usecase for bearer token lifecycle operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.token_repo = AccessTokenRepository(session)
        self.project_repo = ProjectRepository(session)
        self.folder_repo = ClientFolderRepository(session)

    async def issue(
        self,
        kind: TokenKind | str,
        subject_id: UUID,
        created_by: UUID | None = None,
    ) -> IssuedToken:
        """Issue a new token of a stored kind.

        Args:
            kind: Token kind
            subject_id: Record the token is bound to
            created_by: Issuing user, None for system-issued tokens

        Returns:
            IssuedToken with the raw secret

        Raises:
            ValidationException: If the kind is not kept in the token store
            ConflictException: If no unique secret could be generated
        """
        kind = TokenKind(kind)
        policy = get_policy(kind)
        if not policy.stored:
            raise ValidationException(f"Tokens of kind '{kind.value}' are not issued individually")

        max_retries = settings.token_issue_max_attempts
        for attempt in range(max_retries):
            secret_info = token_codec.create_secret_info()
            now = utc_now()

            try:
                async with self.transaction():
                    if policy.replaces_prior:
                        replaced = await self.token_repo.invalidate_prior(
                            kind.value, subject_id, now, single_use=policy.single_use
                        )
                        if replaced:
                            logger.info(
                                "Invalidated %s prior %s token(s) for subject %s",
                                replaced, kind.value, subject_id,
                            )
                    token = await self.token_repo.create(
                        kind=kind.value,
                        subject_id=subject_id,
                        secret_digest=secret_info.digest,
                        issued_at=now,
                        expires_at=calculate_expiry(kind, now),
                        created_by_user_id=created_by,
                    )
                break
            except DuplicateRecordException:
                # Digest collision; the transaction rolled back, retry with a fresh secret
                logger.warning("Digest collision issuing %s token (attempt %s)", kind.value, attempt + 1)
                if attempt == max_retries - 1:
                    raise ConflictException("Failed to generate unique token after multiple attempts")
                continue

        logger.info("Issued %s token %s for subject %s", kind.value, token.id, subject_id)
        return IssuedToken(secret=secret_info.secret, token=token)

    async def invalidate_prior(self, kind: TokenKind | str, subject_id: UUID) -> int:
        """Invalidate every usable token of a kind bound to a subject.

        Returns:
            Number of tokens invalidated
        """
        kind = TokenKind(kind)
        policy = get_policy(kind)
        async with self.transaction():
            count = await self.token_repo.invalidate_prior(
                kind.value, subject_id, utc_now(), single_use=policy.single_use
            )
        logger.info("Invalidated %s %s token(s) for subject %s", count, kind.value, subject_id)
        return count

    async def resolve(
        self,
        kind: TokenKind | str,
        raw_secret: str | None,
        expected_subject_id: UUID | None = None,
    ) -> ResolvedToken:
        """Resolve a presented secret to a usable grant.

        Args:
            kind: Token kind the secret is presented as
            raw_secret: The secret as supplied by the caller
            expected_subject_id: When given, the token must be bound to this record

        Returns:
            ResolvedToken

        Raises:
            NotFoundException: If the token is unknown, unusable or bound elsewhere
            ExpiredException: If the kind reveals expiry and the token has expired
        """
        kind = TokenKind(kind)
        policy = get_policy(kind)
        if not raw_secret:
            raise NotFoundException(INVALID_TOKEN_MESSAGE)

        secret_digest = digest_secret(raw_secret)
        if not policy.stored:
            return await self._resolve_share_token(secret_digest, expected_subject_id)

        now = utc_now()
        async with self.transaction():
            token = await self.token_repo.get_by_digest(kind.value, secret_digest)

            if token is None:
                raise NotFoundException(INVALID_TOKEN_MESSAGE)

            if expected_subject_id is not None and token.subject_id != expected_subject_id:
                logger.debug("%s token %s presented for a different subject", kind.value, token.id)
                raise NotFoundException(INVALID_TOKEN_MESSAGE)

            if token.revoked_at is not None or token.consumed_at is not None:
                logger.debug("%s token %s is no longer usable", kind.value, token.id)
                raise NotFoundException(INVALID_TOKEN_MESSAGE)

            if is_token_expired(token.expires_at, now):
                logger.debug("%s token %s has expired", kind.value, token.id)
                if policy.reveals_expiry:
                    raise ExpiredException("This link has expired")
                raise NotFoundException(INVALID_TOKEN_MESSAGE)

            await self.token_repo.touch_last_used(token.id, now)

        return ResolvedToken(
            kind=kind,
            subject_id=token.subject_id,
            token_id=token.id,
            issued_at=ensure_utc(token.issued_at),
            expires_at=ensure_utc(token.expires_at),
        )

    async def _resolve_share_token(
        self, secret_digest: str, expected_subject_id: UUID | None
    ) -> ResolvedToken:
        async with self.transaction():
            project = await self.project_repo.get_by_share_digest(secret_digest)

        if project is None or not token_codec.secrets_match(project.share_token_digest, secret_digest):
            raise NotFoundException(INVALID_TOKEN_MESSAGE)
        if expected_subject_id is not None and project.id != expected_subject_id:
            raise NotFoundException(INVALID_TOKEN_MESSAGE)

        return ResolvedToken(
            kind=TokenKind.PROJECT_SHARE_TOKEN,
            subject_id=project.id,
            token_id=None,
            issued_at=ensure_utc(project.share_token_rotated_at),
            expires_at=None,
        )

    async def consume(self, resolved: ResolvedToken) -> None:
        """Burn a single-use token.

        Exactly one of any number of concurrent callers succeeds; the store
        decides with a single conditional update.

        Raises:
            ValidationException: If the kind is not single-use
            AlreadyUsedException: If the token was already consumed or revoked
        """
        policy = get_policy(resolved.kind)
        if not policy.single_use or resolved.token_id is None:
            raise ValidationException(f"Tokens of kind '{resolved.kind.value}' cannot be consumed")

        async with self.transaction():
            consumed = await self.token_repo.consume_if_unused(resolved.token_id, utc_now())

        if not consumed:
            logger.info("%s token %s was already used", resolved.kind.value, resolved.token_id)
            raise AlreadyUsedException("This link has already been used")

        logger.info("Consumed %s token %s", resolved.kind.value, resolved.token_id)

    async def revoke(self, token_id: UUID, requested_by: SessionPrincipal) -> AccessToken:
        """Revoke a token.

        Allowed for administrators, the issuer, and the owner of the bound
        record. Revocation is monotonic: revoking twice keeps the first time.

        Raises:
            NotFoundException: If token not found
            ForbiddenException: If the caller may not revoke this token
        """
        async with self.transaction():
            token = await self.token_repo.get_by_id(token_id)

            if not token:
                raise NotFoundException("Token not found")

            if not await self._may_manage(token, requested_by):
                raise ForbiddenException("Access denied to this token")

            revoked = await self.token_repo.revoke_if_active(token_id, utc_now())
            token = await self.token_repo.get_by_id(token_id)

        if revoked:
            logger.info("Revoked %s token %s by user %s", token.kind, token.id, requested_by.user_id)
        return token

    async def _may_manage(self, token: AccessToken, principal: SessionPrincipal) -> bool:
        if principal.is_admin or token.created_by_user_id == principal.user_id:
            return True
        binding = get_policy(token.kind).binding
        if binding == "project":
            owner_id = await self.project_repo.get_owner_id(token.subject_id)
        elif binding == "client_folder":
            owner_id = await self.folder_repo.get_owner_id(token.subject_id)
        else:
            owner_id = token.subject_id
        return owner_id == principal.user_id

    async def reset_share_token(self, project_id: UUID) -> str:
        """Rotate a project's static share token.

        The previous value stops matching as soon as this commits.

        Returns:
            The new raw share token (shown only once)

        Raises:
            NotFoundException: If project not found
            ConflictException: If no unique secret could be generated
        """
        max_retries = settings.token_issue_max_attempts
        for attempt in range(max_retries):
            secret_info = token_codec.create_secret_info()
            try:
                async with self.transaction():
                    rotated = await self.project_repo.rotate_share_digest(
                        project_id, secret_info.digest, utc_now()
                    )
                    if not rotated:
                        raise NotFoundException("Project not found")
                break
            except DuplicateRecordException:
                logger.warning("Digest collision rotating share token (attempt %s)", attempt + 1)
                if attempt == max_retries - 1:
                    raise ConflictException("Failed to generate unique token after multiple attempts")
                continue

        logger.info("Rotated share token for project %s", project_id)
        return secret_info.secret

    async def list_for_subject(
        self, kind: TokenKind | str, subject_id: UUID, include_inactive: bool = False
    ) -> list[AccessToken]:
        """List token metadata for a subject (never the secrets)."""
        kind = TokenKind(kind)
        async with self.transaction():
            return await self.token_repo.list_for_subject(
                kind.value, subject_id, now=None if include_inactive else utc_now()
            )
