"""Auth service: register, login, refresh, logout and profile flows.

Every flow returns an :class:`AuthResult` holding either a success payload or
an :class:`AuthError`. Nothing domain-level is raised past this layer;
unexpected failures (store timeouts, codec errors) are logged and surface as
``ErrorKind.INTERNAL``. No flow retries a store call.
"""
from dataclasses import dataclass
from typing import Callable, Optional

from sessionguard.core.errors import AuthError, ErrorKind, TokenRejected
from sessionguard.core.lifecycle import TokenLifecycleManager, TokenPair
from sessionguard.core.store import CredentialStore, DuplicateUserError, UserSummary
from sessionguard.middleware.monitoring import record_auth_failure
from sessionguard.utils.auth import PasswordHasherAdapter
from sessionguard.utils.jwt_utils import TokenError
from sessionguard.utils.logger import logger


@dataclass(frozen=True)
class AuthSession:
    """Success payload: who the caller is and, where issued, their tokens."""
    user: Optional[UserSummary] = None
    tokens: Optional[TokenPair] = None
    rotated: bool = False


@dataclass(frozen=True)
class AuthResult:
    session: Optional[AuthSession] = None
    error: Optional[AuthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, session: Optional[AuthSession] = None) -> "AuthResult":
        return cls(session=session or AuthSession())

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "AuthResult":
        return cls(error=AuthError(kind=kind, message=message))


class AuthService:
    def __init__(
        self,
        store: CredentialStore,
        lifecycle: TokenLifecycleManager,
        passwords: Optional[PasswordHasherAdapter] = None,
    ):
        self.store = store
        self.lifecycle = lifecycle
        self.passwords = passwords or PasswordHasherAdapter()

    def _run(self, flow: str, operation: Callable[[], AuthResult]) -> AuthResult:
        try:
            result = operation()
        except TokenRejected as exc:
            result = AuthResult(error=exc.to_error())
        except Exception:
            logger.error(f"Unexpected error during {flow}", extra={"action": flow}, exc_info=True)
            result = AuthResult.failure(ErrorKind.INTERNAL, f"An unexpected error occurred during {flow}")

        if not result.ok:
            record_auth_failure(result.error.kind.value)
            if result.error.kind is not ErrorKind.INTERNAL:
                logger.warning(
                    f"{flow} rejected: {result.error.message}",
                    extra={"action": flow, "reason": result.error.kind.value},
                )
        return result

    # ------------------------------------------------------------------
    # Credential flows
    # ------------------------------------------------------------------

    def register(self, email: str, password: str, name: str) -> AuthResult:
        def operation() -> AuthResult:
            if self.store.find_user_by_email(email) is not None:
                return AuthResult.failure(ErrorKind.CONFLICT, "User already exists")
            try:
                user = self.store.create_user(email, self.passwords.hash(password), name)
            except DuplicateUserError:
                return AuthResult.failure(ErrorKind.CONFLICT, "User already exists")

            summary = UserSummary.from_user(user)
            tokens = self.lifecycle.issue_session(summary)
            logger.info("User registered", extra={"user_id": summary.id, "action": "register"})
            return AuthResult.success(AuthSession(user=summary, tokens=tokens))

        return self._run("register", operation)

    def login(self, email: str, password: str) -> AuthResult:
        def operation() -> AuthResult:
            user = self.store.find_user_by_email(email)
            if user is None or not self.passwords.verify(password, user.password_hash):
                return AuthResult.failure(ErrorKind.INVALID_CREDENTIALS, "Invalid email or password")
            if not user.is_active:
                return AuthResult.failure(ErrorKind.FORBIDDEN, "Your account is currently banned")

            summary = UserSummary.from_user(user)
            tokens = self.lifecycle.issue_session(summary)
            logger.info("User logged in", extra={"user_id": summary.id, "action": "login"})
            return AuthResult.success(AuthSession(user=summary, tokens=tokens))

        return self._run("login", operation)

    # ------------------------------------------------------------------
    # Token flows
    # ------------------------------------------------------------------

    def refresh(self, refresh_token: Optional[str]) -> AuthResult:
        def operation() -> AuthResult:
            if not refresh_token:
                return AuthResult.failure(ErrorKind.INVALID_TOKEN, "Refresh token is required")
            outcome = self.lifecycle.refresh(refresh_token)
            return AuthResult.success(
                AuthSession(user=outcome.user, tokens=outcome.tokens, rotated=outcome.rotated)
            )

        return self._run("refresh", operation)

    def logout(self, refresh_token: Optional[str]) -> AuthResult:
        """Revoke the presented refresh token. Always succeeds for the caller."""
        if refresh_token:
            try:
                self.lifecycle.revoke(refresh_token)
            except Exception:
                logger.warning("Logout could not revoke refresh token", extra={"action": "logout"}, exc_info=True)
        return AuthResult.success()

    def logout_all(self, user_id: Optional[int]) -> AuthResult:
        """Revoke every refresh token of ``user_id``. Always succeeds for the caller."""
        if user_id is not None:
            try:
                self.lifecycle.revoke_all(user_id)
            except Exception:
                logger.warning(
                    "Logout-all could not revoke refresh tokens",
                    extra={"action": "logout_all", "user_id": user_id},
                    exc_info=True,
                )
        return AuthResult.success()

    # ------------------------------------------------------------------
    # Access-token checks
    # ------------------------------------------------------------------

    def authenticate(self, access_token: str) -> AuthResult:
        """Resolve an access token to an active user."""
        def operation() -> AuthResult:
            try:
                claims = self.lifecycle.codec.verify_access(access_token)
            except TokenError as exc:
                return AuthResult.failure(ErrorKind.INVALID_TOKEN, f"Invalid access token ({exc.reason.value})")

            user = self.store.find_user_by_id(claims.user_id)
            if user is None or not user.is_active:
                return AuthResult.failure(ErrorKind.FORBIDDEN, "User not found or inactive")
            return AuthResult.success(AuthSession(user=user))

        return self._run("authenticate", operation)

    def profile(self, user_id: int) -> AuthResult:
        def operation() -> AuthResult:
            user = self.store.find_user_by_id(user_id)
            if user is None:
                return AuthResult.failure(ErrorKind.NOT_FOUND, "User not found")
            return AuthResult.success(AuthSession(user=user))

        return self._run("profile", operation)
