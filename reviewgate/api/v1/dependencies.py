"""Dependencies for API endpoints (principal resolution, collaborators)."""
from typing import Annotated

from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from reviewgate.common.database import get_db
from reviewgate.common.exceptions import UnauthorizedException, InvalidSessionException
from reviewgate.domain.principals import Anonymous, Principal, SessionPrincipal, TokenHolder
from reviewgate.integrations.blob_store import BlobStore, get_blob_store
from reviewgate.integrations.notifier import Notifier, get_notifier
from reviewgate.usecase.auth_usecase import AuthUsecase


def _parse_bearer(authorization: str) -> str:
    """Extract the credential from an ``Authorization: Bearer`` header."""
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise InvalidSessionException()
    return parts[1]


async def get_principal(
    authorization: Annotated[str | None, Header()] = None,
    x_review_token: Annotated[str | None, Header()] = None,
    x_share_token: Annotated[str | None, Header()] = None,
    x_client_token: Annotated[str | None, Header()] = None,
    t: Annotated[str | None, Query(max_length=256)] = None,
    session: AsyncSession = Depends(get_db),
) -> Principal:
    """Build the request principal.

    A session wins when an Authorization header is present (an invalid session
    is rejected, never downgraded to a bearer token). Otherwise the first
    bearer secret found in the per-kind carriers makes the caller a token
    holder; with neither the caller is anonymous.

    Raises:
        InvalidSessionException / SessionExpiredException: If the session token is bad
    """
    if authorization:
        jwt_token = _parse_bearer(authorization)
        auth_usecase = AuthUsecase(session)
        return await auth_usecase.authenticate_jwt(jwt_token)

    for secret in (x_review_token, x_share_token, x_client_token, t):
        if secret:
            return TokenHolder(secret=secret)

    return Anonymous()


async def get_current_session(
    principal: Annotated[Principal, Depends(get_principal)],
) -> SessionPrincipal:
    """Require an authenticated session.

    Raises:
        UnauthorizedException: If the caller has no session
    """
    if not isinstance(principal, SessionPrincipal):
        raise UnauthorizedException("Missing authorization header")
    return principal


# Type aliases for convenience
CurrentPrincipal = Annotated[Principal, Depends(get_principal)]
CurrentSession = Annotated[SessionPrincipal, Depends(get_current_session)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]
BlobStoreDep = Annotated[BlobStore, Depends(get_blob_store)]
