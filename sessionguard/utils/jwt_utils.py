"""JWT utilities: token kinds, typed claims, signing, verification and lifetimes"""
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Union

from jose import JWTError, jwt

from sessionguard.config import Settings, settings

DEFAULT_ACCESS_TOKEN_SECONDS = 15 * 60
DEFAULT_REFRESH_TOKEN_SECONDS = 7 * 24 * 60 * 60
# Longest lifetime a duration string may configure (one year)
MAX_TOKEN_LIFETIME_SECONDS = 365 * 24 * 60 * 60

# Claims the codec owns; caller-supplied values for these are ignored
_RESERVED_CLAIMS = {"sub", "type", "iat", "exp", "jti"}

_DURATION_PATTERN = re.compile(r"([0-9]+)([smhd])")
_SECONDS_PATTERN = re.compile(r"[0-9]+")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}


def utcnow() -> datetime:
    """Naive UTC now, matching the naive ``DateTime`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _to_timestamp(moment: datetime) -> int:
    return int(moment.replace(tzinfo=timezone.utc).timestamp())


def _from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Token kinds and claims
# ---------------------------------------------------------------------------

class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenFailure(str, Enum):
    """Why a token failed verification."""
    MALFORMED = "malformed"
    TYPE_MISMATCH = "type_mismatch"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class AccessClaims:
    kind: ClassVar[TokenKind] = TokenKind.ACCESS

    user_id: int
    email: Optional[str] = None
    iat: Optional[int] = None
    exp: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RefreshClaims:
    kind: ClassVar[TokenKind] = TokenKind.REFRESH

    user_id: int
    jti: str
    iat: Optional[int] = None
    exp: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)


TokenClaims = Union[AccessClaims, RefreshClaims]


class TokenError(Exception):
    """Raised by :func:`verify_token`; ``reason`` tells callers how to branch.

    For ``EXPIRED`` the signature was valid, so ``claims`` holds the decoded
    (but no longer trusted for auth) claim set.
    """

    def __init__(self, reason: TokenFailure, message: str = "", claims: Optional[TokenClaims] = None):
        super().__init__(message or reason.value)
        self.reason = reason
        self.claims = claims


@dataclass(frozen=True)
class IssuedToken:
    """A freshly signed token plus what the transport needs to ship it."""
    token: str
    kind: TokenKind
    expires_at: datetime
    lifetime_seconds: int
    claims: TokenClaims


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

def parse_duration(value: Optional[str]) -> int:
    """Parse ``<n>[smhd]`` (or a bare number of seconds) into seconds.

    Only ASCII digits are accepted. Anything unparseable, or longer than
    ``MAX_TOKEN_LIFETIME_SECONDS``, yields 0; callers fall back to their default.
    """
    if not value:
        return 0
    value = value.strip()
    match = _DURATION_PATTERN.fullmatch(value)
    if match:
        amount, unit = match.groups()
        seconds = int(amount) * _UNIT_SECONDS[unit]
    elif _SECONDS_PATTERN.fullmatch(value):
        seconds = int(value)
    else:
        return 0
    return seconds if seconds <= MAX_TOKEN_LIFETIME_SECONDS else 0


def resolve_lifetime(value: Optional[str], default_seconds: int) -> int:
    seconds = parse_duration(value)
    return seconds if seconds > 0 else default_seconds


@dataclass(frozen=True)
class ExpiryInfo:
    hours_left: float
    is_expired: bool
    is_expiring_soon: bool

    @property
    def days_left(self) -> float:
        return self.hours_left / 24


def remaining_lifetime(expires_at: datetime, now: Optional[datetime] = None,
                       threshold_hours: float = 24.0) -> ExpiryInfo:
    """Classify how much lifetime a stored refresh token has left."""
    now = now or utcnow()
    hours_left = (expires_at - now).total_seconds() / 3600
    return ExpiryInfo(
        hours_left=hours_left,
        is_expired=hours_left <= 0,
        is_expiring_soon=hours_left < threshold_hours,
    )


# ---------------------------------------------------------------------------
# Signing and verification
# ---------------------------------------------------------------------------

def _claims_from_payload(payload: Mapping[str, Any], kind: TokenKind) -> TokenClaims:
    try:
        user_id = int(payload["sub"])
        iat = int(payload["iat"])
        exp = int(payload["exp"])
    except (KeyError, TypeError, ValueError):
        raise TokenError(TokenFailure.MALFORMED, "Token is missing required claims")

    extra = {k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS and k != "email"}

    if kind is TokenKind.ACCESS:
        return AccessClaims(user_id=user_id, email=payload.get("email"), iat=iat, exp=exp, extra=extra)

    jti = payload.get("jti")
    if not jti:
        raise TokenError(TokenFailure.MALFORMED, "Refresh token has no jti")
    return RefreshClaims(user_id=user_id, jti=str(jti), iat=iat, exp=exp, extra=extra)


def issue_token(
    claims: Mapping[str, Any],
    kind: TokenKind,
    secret: str,
    lifetime_seconds: int,
    algorithm: str = "HS256",
    now: Optional[datetime] = None,
) -> IssuedToken:
    """Sign ``claims`` as a ``kind`` token valid for ``lifetime_seconds``.

    ``claims`` must contain ``user_id``; access tokens may carry ``email``.
    Refresh tokens always get a fresh ``jti``. Other keys are embedded as-is.
    """
    now = now or utcnow()
    issued_at = _to_timestamp(now)

    payload: Dict[str, Any] = {
        k: v for k, v in claims.items() if k not in _RESERVED_CLAIMS and k != "user_id"
    }
    payload.update({
        "sub": str(claims["user_id"]),
        "type": kind.value,
        "iat": issued_at,
        "exp": issued_at + lifetime_seconds,
    })
    if kind is TokenKind.REFRESH:
        payload["jti"] = str(uuid.uuid4())
        payload.pop("email", None)

    token = jwt.encode(payload, secret, algorithm=algorithm)
    return IssuedToken(
        token=token,
        kind=kind,
        expires_at=_from_timestamp(payload["exp"]),
        lifetime_seconds=lifetime_seconds,
        claims=_claims_from_payload(payload, kind),
    )


def verify_token(
    token: str,
    kind: TokenKind,
    secret: str,
    algorithm: str = "HS256",
    now: Optional[datetime] = None,
) -> TokenClaims:
    """Verify ``token`` as a ``kind`` token and return its typed claims.

    Checks, in order: well-formed, type tag equals ``kind``, signature, expiry.
    The type tag is read before the signature because each kind has its own
    secret; a token of the other kind is rejected as a type mismatch.

    Raises:
        TokenError: with the failing :class:`TokenFailure` as ``reason``.
    """
    try:
        unverified = jwt.get_unverified_claims(token)
    except JWTError:
        raise TokenError(TokenFailure.MALFORMED, "Token could not be decoded")

    if unverified.get("type") != kind.value:
        raise TokenError(TokenFailure.TYPE_MISMATCH, f"Expected a {kind.value} token")

    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm], options={"verify_exp": False})
    except JWTError:
        raise TokenError(TokenFailure.SIGNATURE_INVALID, "Token signature is invalid")

    claims = _claims_from_payload(payload, kind)
    if _to_timestamp(now or utcnow()) >= claims.exp:
        raise TokenError(TokenFailure.EXPIRED, "Token has expired", claims=claims)
    return claims


class TokenCodec:
    """Binds secrets, algorithm, lifetimes and a clock to issue/verify."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_lifetime_seconds: int = DEFAULT_ACCESS_TOKEN_SECONDS,
        refresh_lifetime_seconds: int = DEFAULT_REFRESH_TOKEN_SECONDS,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] = utcnow,
    ):
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must use distinct signing secrets")
        self._secrets = {TokenKind.ACCESS: access_secret, TokenKind.REFRESH: refresh_secret}
        self.lifetimes = {
            TokenKind.ACCESS: access_lifetime_seconds,
            TokenKind.REFRESH: refresh_lifetime_seconds,
        }
        self.algorithm = algorithm
        self.clock = clock

    @classmethod
    def from_settings(cls, config: Settings = settings, clock: Callable[[], datetime] = utcnow) -> "TokenCodec":
        return cls(
            access_secret=config.JWT_SECRET,
            refresh_secret=config.REFRESH_JWT_SECRET,
            access_lifetime_seconds=resolve_lifetime(config.ACCESS_TOKEN_EXPIRY, DEFAULT_ACCESS_TOKEN_SECONDS),
            refresh_lifetime_seconds=resolve_lifetime(config.REFRESH_TOKEN_EXPIRY, DEFAULT_REFRESH_TOKEN_SECONDS),
            algorithm=config.JWT_ALGORITHM,
            clock=clock,
        )

    def issue(self, claims: Mapping[str, Any], kind: TokenKind) -> IssuedToken:
        return issue_token(
            claims, kind, self._secrets[kind], self.lifetimes[kind],
            algorithm=self.algorithm, now=self.clock(),
        )

    def verify(self, token: str, kind: TokenKind) -> TokenClaims:
        return verify_token(token, kind, self._secrets[kind], algorithm=self.algorithm, now=self.clock())

    def issue_access(self, user_id: int, email: Optional[str] = None) -> IssuedToken:
        claims: Dict[str, Any] = {"user_id": user_id}
        if email is not None:
            claims["email"] = email
        return self.issue(claims, TokenKind.ACCESS)

    def issue_refresh(self, user_id: int) -> IssuedToken:
        return self.issue({"user_id": user_id}, TokenKind.REFRESH)

    def verify_access(self, token: str) -> AccessClaims:
        return self.verify(token, TokenKind.ACCESS)

    def verify_refresh(self, token: str) -> RefreshClaims:
        return self.verify(token, TokenKind.REFRESH)
