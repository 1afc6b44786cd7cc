"""Test the bearer token lifecycle.

Test cases:
- Issue returns the secret once; only its digest is stored
- Resolve fails uniformly for unknown, tampered, foreign, revoked, consumed
  and expired tokens; only password reset reveals expiry
- Consume is single-shot, also under concurrency
- Revocation is monotonic and restricted to issuer, owner or admin
- Digest collisions are retried, then reported as Conflict
- Store timeouts surface as StoreUnavailable, never as NotFound
"""
import asyncio
import logging
from datetime import timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.clock import ensure_utc, utc_now
from reviewgate.common.config import settings
from reviewgate.common.exceptions import (
    AlreadyUsedException,
    ConflictException,
    ExpiredException,
    ForbiddenException,
    NotFoundException,
    StoreUnavailableException,
    ValidationException,
)
from reviewgate.domain import token_codec
from reviewgate.domain.principals import SessionPrincipal
from reviewgate.domain.token_codec import SecretInfo, digest_secret
from reviewgate.models.access_token import AccessToken
from reviewgate.models.enums import TokenKind, UserRole
from reviewgate.models.user import User
from reviewgate.repository.access_token_repository import AccessTokenRepository
from reviewgate.repository.exceptions import DatabaseConnectionException
from reviewgate.usecase.access_token_usecase import AccessTokenUsecase, INVALID_TOKEN_MESSAGE


@pytest.mark.security
class TestIssueAndResolve:
    """Test issuing and resolving tokens."""

    async def test_issue_then_resolve(self, session: AsyncSession, reload):
        usecase = AccessTokenUsecase(session)
        folder_id = uuid4()

        issued = await usecase.issue(TokenKind.CLIENT_FOLDER_ACCESS, folder_id)
        resolved = await usecase.resolve(TokenKind.CLIENT_FOLDER_ACCESS, issued.secret, folder_id)

        assert resolved.subject_id == folder_id
        assert resolved.token_id == issued.token.id
        assert resolved.kind == TokenKind.CLIENT_FOLDER_ACCESS

        stored = await reload(AccessToken, issued.token.id)
        assert stored.secret_digest == digest_secret(issued.secret)
        assert stored.secret_digest != issued.secret
        assert stored.last_used_at is not None

    async def test_issue_applies_policy_ttl(self, session: AsyncSession):
        usecase = AccessTokenUsecase(session)
        issued = await usecase.issue(TokenKind.PASSWORD_RESET, uuid4())
        lifetime = ensure_utc(issued.token.expires_at) - ensure_utc(issued.token.issued_at)
        assert lifetime == timedelta(hours=1)

    async def test_share_token_is_not_issued_individually(self, session: AsyncSession):
        with pytest.raises(ValidationException):
            await AccessTokenUsecase(session).issue(TokenKind.PROJECT_SHARE_TOKEN, uuid4())

    async def test_tampered_secret_not_found(self, session: AsyncSession):
        usecase = AccessTokenUsecase(session)
        folder_id = uuid4()
        issued = await usecase.issue(TokenKind.CLIENT_FOLDER_ACCESS, folder_id)

        last = issued.secret[-1]
        tampered = issued.secret[:-1] + ("0" if last != "0" else "1")
        with pytest.raises(NotFoundException) as exc:
            await usecase.resolve(TokenKind.CLIENT_FOLDER_ACCESS, tampered, folder_id)
        assert exc.value.message == INVALID_TOKEN_MESSAGE

    async def test_empty_secret_not_found(self, session: AsyncSession):
        with pytest.raises(NotFoundException):
            await AccessTokenUsecase(session).resolve(TokenKind.PROJECT_REVIEW_LINK, "")

    async def test_binding_mismatch_is_indistinguishable_from_unknown(self, session: AsyncSession):
        usecase = AccessTokenUsecase(session)
        issued = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, uuid4())

        with pytest.raises(NotFoundException) as foreign:
            await usecase.resolve(TokenKind.PROJECT_REVIEW_LINK, issued.secret, uuid4())
        with pytest.raises(NotFoundException) as unknown:
            await usecase.resolve(TokenKind.PROJECT_REVIEW_LINK, token_codec.generate_secret(), uuid4())

        assert foreign.value.message == unknown.value.message
        assert foreign.value.status_code == unknown.value.status_code == 404

    async def test_kind_is_part_of_the_lookup(self, session: AsyncSession):
        usecase = AccessTokenUsecase(session)
        subject_id = uuid4()
        issued = await usecase.issue(TokenKind.CLIENT_FOLDER_ACCESS, subject_id)

        with pytest.raises(NotFoundException):
            await usecase.resolve(TokenKind.PROJECT_REVIEW_LINK, issued.secret, subject_id)

    async def test_expired_access_token_collapses_to_not_found(
        self, session: AsyncSession, create_bearer_token
    ):
        project_id = uuid4()
        secret, _ = await create_bearer_token(
            TokenKind.PROJECT_REVIEW_LINK, project_id, expires_at=utc_now() - timedelta(seconds=1)
        )
        with pytest.raises(NotFoundException):
            await AccessTokenUsecase(session).resolve(TokenKind.PROJECT_REVIEW_LINK, secret, project_id)

    async def test_expired_password_reset_reveals_expiry(
        self, session: AsyncSession, create_bearer_token
    ):
        user_id = uuid4()
        secret, _ = await create_bearer_token(
            TokenKind.PASSWORD_RESET, user_id, expires_at=utc_now() - timedelta(minutes=1)
        )
        with pytest.raises(ExpiredException):
            await AccessTokenUsecase(session).resolve(TokenKind.PASSWORD_RESET, secret, user_id)

    async def test_expired_password_reset_for_other_user_not_found(
        self, session: AsyncSession, create_bearer_token
    ):
        secret, _ = await create_bearer_token(
            TokenKind.PASSWORD_RESET, uuid4(), expires_at=utc_now() - timedelta(minutes=1)
        )
        with pytest.raises(NotFoundException):
            await AccessTokenUsecase(session).resolve(TokenKind.PASSWORD_RESET, secret, uuid4())

    async def test_expired_and_consumed_reset_not_found(
        self, session: AsyncSession, create_bearer_token
    ):
        user_id = uuid4()
        secret, _ = await create_bearer_token(
            TokenKind.PASSWORD_RESET,
            user_id,
            expires_at=utc_now() - timedelta(minutes=1),
            consumed_at=utc_now() - timedelta(minutes=30),
        )
        with pytest.raises(NotFoundException):
            await AccessTokenUsecase(session).resolve(TokenKind.PASSWORD_RESET, secret, user_id)

    async def test_replacing_kind_invalidates_prior_tokens(self, session: AsyncSession):
        usecase = AccessTokenUsecase(session)
        user_id = uuid4()

        first = await usecase.issue(TokenKind.PASSWORD_RESET, user_id)
        second = await usecase.issue(TokenKind.PASSWORD_RESET, user_id)

        with pytest.raises(NotFoundException):
            await usecase.resolve(TokenKind.PASSWORD_RESET, first.secret, user_id)
        resolved = await usecase.resolve(TokenKind.PASSWORD_RESET, second.secret, user_id)
        assert resolved.token_id == second.token.id

    async def test_non_replacing_kind_keeps_prior_tokens(self, session: AsyncSession):
        usecase = AccessTokenUsecase(session)
        project_id = uuid4()

        first = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, project_id)
        await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, project_id)

        resolved = await usecase.resolve(TokenKind.PROJECT_REVIEW_LINK, first.secret, project_id)
        assert resolved.token_id == first.token.id

    async def test_secret_never_logged(self, session: AsyncSession, caplog):
        caplog.set_level(logging.DEBUG)
        usecase = AccessTokenUsecase(session)
        user_id = uuid4()

        issued = await usecase.issue(TokenKind.PASSWORD_RESET, user_id)
        resolved = await usecase.resolve(TokenKind.PASSWORD_RESET, issued.secret, user_id)
        await usecase.consume(resolved)

        assert issued.secret not in caplog.text
        assert issued.secret not in repr(issued)


@pytest.mark.security
class TestConsume:
    """Test single-use consumption."""

    async def test_consume_once(self, session: AsyncSession):
        usecase = AccessTokenUsecase(session)
        user_id = uuid4()
        issued = await usecase.issue(TokenKind.PASSWORD_RESET, user_id)
        resolved = await usecase.resolve(TokenKind.PASSWORD_RESET, issued.secret, user_id)

        await usecase.consume(resolved)

        with pytest.raises(AlreadyUsedException):
            await usecase.consume(resolved)
        with pytest.raises(NotFoundException):
            await usecase.resolve(TokenKind.PASSWORD_RESET, issued.secret, user_id)

    async def test_reusable_kind_cannot_be_consumed(self, session: AsyncSession):
        usecase = AccessTokenUsecase(session)
        project_id = uuid4()
        issued = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, project_id)
        resolved = await usecase.resolve(TokenKind.PROJECT_REVIEW_LINK, issued.secret, project_id)

        with pytest.raises(ValidationException):
            await usecase.consume(resolved)

    async def test_revoked_token_cannot_be_consumed(
        self, session: AsyncSession, admin_user: User
    ):
        usecase = AccessTokenUsecase(session)
        user_id = uuid4()
        issued = await usecase.issue(TokenKind.PASSWORD_RESET, user_id)
        resolved = await usecase.resolve(TokenKind.PASSWORD_RESET, issued.secret, user_id)

        await usecase.revoke(issued.token.id, SessionPrincipal(admin_user.id, UserRole.ADMIN))

        with pytest.raises(AlreadyUsedException):
            await usecase.consume(resolved)


@pytest.mark.concurrency
class TestConcurrentConsume:
    """Test that the store decides consumption races."""

    async def test_exactly_one_concurrent_consume_wins(self, test_db):
        user_id = uuid4()
        async with test_db() as setup_session:
            usecase = AccessTokenUsecase(setup_session)
            issued = await usecase.issue(TokenKind.PASSWORD_RESET, user_id)
            resolved = await usecase.resolve(TokenKind.PASSWORD_RESET, issued.secret, user_id)

        async def consume_in_own_session():
            async with test_db() as own_session:
                await AccessTokenUsecase(own_session).consume(resolved)

        results = await asyncio.gather(
            consume_in_own_session(),
            consume_in_own_session(),
            consume_in_own_session(),
            return_exceptions=True,
        )

        successes = [r for r in results if r is None]
        failures = [r for r in results if isinstance(r, AlreadyUsedException)]
        assert len(successes) == 1
        assert len(failures) == 2


@pytest.mark.security
class TestRevoke:
    """Test revocation."""

    async def test_revoke_is_monotonic(self, session: AsyncSession, user_a: User):
        usecase = AccessTokenUsecase(session)
        principal = SessionPrincipal(user_a.id, UserRole.ENGINEER)
        issued = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, uuid4(), created_by=user_a.id)

        first = await usecase.revoke(issued.token.id, principal)
        first_revoked_at = first.revoked_at
        second = await usecase.revoke(issued.token.id, principal)

        assert first_revoked_at is not None
        assert second.revoked_at == first_revoked_at

    async def test_revoked_token_not_found(self, session: AsyncSession, user_a: User):
        usecase = AccessTokenUsecase(session)
        project_id = uuid4()
        issued = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, project_id, created_by=user_a.id)

        await usecase.revoke(issued.token.id, SessionPrincipal(user_a.id, UserRole.ENGINEER))

        with pytest.raises(NotFoundException):
            await usecase.resolve(TokenKind.PROJECT_REVIEW_LINK, issued.secret, project_id)

    async def test_owner_of_bound_resource_may_revoke(
        self, session: AsyncSession, user_a: User, create_project
    ):
        project = await create_project(user_a)
        usecase = AccessTokenUsecase(session)
        # System-issued (reminder) links have no issuer
        issued = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, project.id)

        token = await usecase.revoke(issued.token.id, SessionPrincipal(user_a.id, UserRole.ENGINEER))
        assert token.revoked_at is not None

    async def test_stranger_cannot_revoke(
        self, session: AsyncSession, user_a: User, user_b: User, create_project
    ):
        project = await create_project(user_a)
        usecase = AccessTokenUsecase(session)
        issued = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, project.id, created_by=user_a.id)

        with pytest.raises(ForbiddenException):
            await usecase.revoke(issued.token.id, SessionPrincipal(user_b.id, UserRole.ENGINEER))

    async def test_admin_may_revoke(
        self, session: AsyncSession, user_a: User, admin_user: User, create_project
    ):
        project = await create_project(user_a)
        usecase = AccessTokenUsecase(session)
        issued = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, project.id, created_by=user_a.id)

        token = await usecase.revoke(issued.token.id, SessionPrincipal(admin_user.id, UserRole.ADMIN))
        assert token.revoked_at is not None

    async def test_revoke_unknown_token(self, session: AsyncSession, admin_user: User):
        with pytest.raises(NotFoundException):
            await AccessTokenUsecase(session).revoke(uuid4(), SessionPrincipal(admin_user.id, UserRole.ADMIN))

    async def test_list_for_subject_hides_inactive(self, session: AsyncSession, user_a: User):
        usecase = AccessTokenUsecase(session)
        project_id = uuid4()
        kept = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, project_id, created_by=user_a.id)
        dropped = await usecase.issue(TokenKind.PROJECT_REVIEW_LINK, project_id, created_by=user_a.id)
        await usecase.revoke(dropped.token.id, SessionPrincipal(user_a.id, UserRole.ENGINEER))

        live = await usecase.list_for_subject(TokenKind.PROJECT_REVIEW_LINK, project_id)
        everything = await usecase.list_for_subject(
            TokenKind.PROJECT_REVIEW_LINK, project_id, include_inactive=True
        )

        assert [t.id for t in live] == [kept.token.id]
        assert {t.id for t in everything} == {kept.token.id, dropped.token.id}


@pytest.mark.security
class TestShareToken:
    """Test the static project share token."""

    async def test_reset_voids_previous_value(
        self, session: AsyncSession, user_a: User, create_project
    ):
        project = await create_project(user_a)
        usecase = AccessTokenUsecase(session)

        old = await usecase.reset_share_token(project.id)
        new = await usecase.reset_share_token(project.id)

        with pytest.raises(NotFoundException):
            await usecase.resolve(TokenKind.PROJECT_SHARE_TOKEN, old)
        resolved = await usecase.resolve(TokenKind.PROJECT_SHARE_TOKEN, new, project.id)
        assert resolved.subject_id == project.id
        assert resolved.token_id is None
        assert resolved.expires_at is None

    async def test_share_token_bound_to_its_project(
        self, session: AsyncSession, user_a: User, create_project
    ):
        project = await create_project(user_a)
        other = await create_project(user_a, title="Other")
        secret = await AccessTokenUsecase(session).reset_share_token(project.id)

        with pytest.raises(NotFoundException):
            await AccessTokenUsecase(session).resolve(TokenKind.PROJECT_SHARE_TOKEN, secret, other.id)

    async def test_reset_unknown_project(self, session: AsyncSession):
        with pytest.raises(NotFoundException):
            await AccessTokenUsecase(session).reset_share_token(uuid4())


@pytest.mark.security
class TestGenerationFailures:
    """Test digest collisions and store failures."""

    async def test_collision_is_retried_with_fresh_secret(
        self, session: AsyncSession, create_bearer_token, monkeypatch
    ):
        folder_id = uuid4()
        existing_secret, _ = await create_bearer_token(TokenKind.CLIENT_FOLDER_ACCESS, folder_id)
        fresh = token_codec.create_secret_info()
        queue = iter([SecretInfo(existing_secret, digest_secret(existing_secret)), fresh])
        monkeypatch.setattr(token_codec, "create_secret_info", lambda: next(queue))

        issued = await AccessTokenUsecase(session).issue(TokenKind.CLIENT_FOLDER_ACCESS, folder_id)

        assert issued.secret == fresh.secret

    async def test_persistent_collision_raises_conflict(
        self, session: AsyncSession, create_bearer_token, monkeypatch
    ):
        existing_secret, _ = await create_bearer_token(TokenKind.CLIENT_FOLDER_ACCESS, uuid4())
        colliding = SecretInfo(existing_secret, digest_secret(existing_secret))
        monkeypatch.setattr(token_codec, "create_secret_info", lambda: colliding)

        with pytest.raises(ConflictException):
            await AccessTokenUsecase(session).issue(TokenKind.CLIENT_FOLDER_ACCESS, uuid4())

    async def test_store_timeout_is_unavailable_not_missing(
        self, session: AsyncSession, monkeypatch
    ):
        async def slow_lookup(self, kind, secret_digest):
            await asyncio.sleep(1)

        monkeypatch.setattr(settings, "store_timeout_seconds", 0.05)
        monkeypatch.setattr(AccessTokenRepository, "get_by_digest", slow_lookup)

        with pytest.raises(StoreUnavailableException):
            await AccessTokenUsecase(session).resolve(
                TokenKind.PROJECT_REVIEW_LINK, token_codec.generate_secret()
            )

    async def test_connection_failure_is_unavailable(self, session: AsyncSession, monkeypatch):
        async def broken_lookup(self, kind, secret_digest):
            raise DatabaseConnectionException(detail="connection refused")

        monkeypatch.setattr(AccessTokenRepository, "get_by_digest", broken_lookup)

        with pytest.raises(StoreUnavailableException):
            await AccessTokenUsecase(session).resolve(
                TokenKind.PROJECT_REVIEW_LINK, token_codec.generate_secret()
            )
