"""Per-kind bearer token policy."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from reviewgate.common.clock import utc_now
from reviewgate.common.config import settings
from reviewgate.models.enums import TokenKind


@dataclass(frozen=True)
class TokenPolicy:
    """Lifecycle rules for one token kind.

    Attributes:
        ttl: Lifetime from issue, or None for tokens that never expire
        single_use: Token is burnt by ``consume``
        replaces_prior: Issuing invalidates every live token of the same subject
        reveals_expiry: Resolution reports ``Expired`` instead of ``NotFound``
        stored: Token lives in the token store (False for the project share token,
            which is a single digest on the project row)
        binding: What ``subject_id`` refers to
    """

    ttl: timedelta | None
    single_use: bool
    replaces_prior: bool
    reveals_expiry: bool
    stored: bool
    binding: str


TOKEN_POLICIES: dict[TokenKind, TokenPolicy] = {
    TokenKind.PASSWORD_RESET: TokenPolicy(
        ttl=timedelta(hours=1),
        single_use=True,
        replaces_prior=True,
        reveals_expiry=True,
        stored=True,
        binding="user",
    ),
    TokenKind.CLIENT_FOLDER_ACCESS: TokenPolicy(
        ttl=timedelta(days=settings.client_access_ttl_days),
        single_use=False,
        replaces_prior=False,
        reveals_expiry=False,
        stored=True,
        binding="client_folder",
    ),
    TokenKind.PROJECT_REVIEW_LINK: TokenPolicy(
        ttl=timedelta(days=settings.review_link_ttl_days),
        single_use=False,
        replaces_prior=False,
        reveals_expiry=False,
        stored=True,
        binding="project",
    ),
    TokenKind.PROJECT_SHARE_TOKEN: TokenPolicy(
        ttl=None,
        single_use=False,
        replaces_prior=True,
        reveals_expiry=False,
        stored=False,
        binding="project",
    ),
}


def get_policy(kind: TokenKind | str) -> TokenPolicy:
    """Look up the policy for a token kind.

    Raises:
        ValueError: If the kind is unknown
    """
    return TOKEN_POLICIES[TokenKind(kind)]


def calculate_expiry(kind: TokenKind | str, issued_at: datetime | None = None) -> datetime | None:
    """Compute ``expires_at`` for a token issued now (None when the kind never expires)."""
    policy = get_policy(kind)
    if policy.ttl is None:
        return None
    issued_at = issued_at or utc_now()
    return issued_at + policy.ttl


@dataclass(frozen=True)
class ResolvedToken:
    """A bearer secret that resolved to a usable grant.

    ``token_id`` is None for the project share token, which has no row of its own.
    """

    kind: TokenKind
    subject_id: UUID
    token_id: UUID | None
    issued_at: datetime | None
    expires_at: datetime | None

    @property
    def holder_identity(self) -> str:
        """Stable identity of the holder, used for author matching on uploads."""
        return str(self.token_id) if self.token_id is not None else f"{self.kind.value}:{self.subject_id}"
