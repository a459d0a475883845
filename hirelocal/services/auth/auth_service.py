"""
Authentication orchestration.

Registration, the two login paths (mobile + OTP, email + password), refresh
token rotation, logout, and session introspection/revocation.

Both login paths end in `establish_session`, which is the only place that
mints refresh tokens for a new login.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from common.auth.password_hasher import CredentialHasher
from common.auth.tokens import (
    TokenError,
    TokenService,
    gen_refresh_id,
    hash_refresh_id,
)
from common.utils.exceptions import (
    ConflictException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from hirelocal.models.user import User, UserRole
from hirelocal.repositories.user_repository import UserRepository
from hirelocal.services.auth.otp import OtpVerifier
from hirelocal.services.auth.session_store import SessionStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
UNKNOWN_DEVICE = "Unknown device"

# Roles a client may request for itself; admin is granted out of band
SELF_ASSIGNABLE_ROLES = {UserRole.user, UserRole.worker, UserRole.customer}


@dataclass
class AuthResult:
    """Tokens and public user data produced by an auth operation."""

    access: str
    user: Optional[dict] = None
    refresh: Optional[str] = None


class AuthService:
    """
    Orchestrates authentication flows.
    """

    def __init__(
        self,
        users: UserRepository,
        hasher: CredentialHasher,
        tokens: TokenService,
        sessions: SessionStore,
        otp_verifier: OtpVerifier,
    ):
        """
        Initialize AuthService.

        Args:
            users: User persistence
            hasher: Password hashing
            tokens: Access/refresh token signing and verification
            sessions: Session bookkeeping on the user aggregate
            otp_verifier: Checks mobile login codes
        """
        self._users = users
        self._hasher = hasher
        self._tokens = tokens
        self._sessions = sessions
        self._otp = otp_verifier

    # ─────────────────────────────────────────────────────────────
    # Registration
    # ─────────────────────────────────────────────────────────────

    async def register(
        self,
        email: Optional[str],
        password: Optional[str],
        role: Optional[str] = None,
    ) -> AuthResult:
        """
        Create an email/password account.

        Returns an access token only. No session or refresh token is created
        until the first login.

        Raises:
            ValidationException: Missing/invalid email, short password, bad role
            ConflictException: Email already registered
        """
        if not email or not password:
            raise ValidationException(
                message="Email and password are required",
                code="MISSING_FIELDS"
            )

        email = email.strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise ValidationException(message="Invalid email format", code="INVALID_EMAIL")

        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationException(
                message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
                code="PASSWORD_TOO_SHORT"
            )

        requested_role = self._parse_role(role, default=UserRole.user)

        if await self._users.find_by_email(email):
            raise ConflictException(
                message="User already exists with this email",
                code="USER_ALREADY_EXISTS"
            )

        user = User(
            email=email,
            password_hash=self._hasher.hash(password),
            role=requested_role,
        )
        await self._users.create(user)

        logger.info(f"User registered: {user.id} role={user.role.value}")

        return AuthResult(
            access=self._tokens.sign_access(user.id, user.role.value),
            user=user.public_profile(),
        )

    # ─────────────────────────────────────────────────────────────
    # Login
    # ─────────────────────────────────────────────────────────────

    async def login_with_otp(
        self,
        mobile: Optional[str],
        otp: Optional[str],
        role: Optional[str] = None,
        device_info: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        """
        Mobile + one-time code login. Creates the account on first login.

        Raises:
            ValidationException: Missing mobile or code, bad role
            UnauthorizedException: Code rejected
        """
        mobile = (mobile or "").strip()
        if not mobile or not otp:
            raise ValidationException(
                message="Mobile number and OTP are required",
                code="MISSING_FIELDS"
            )

        user = await self._users.find_by_mobile(mobile)
        # Role only applies to a new account
        requested_role = self._parse_role(role, default=UserRole.worker) if user is None else None

        if not await self._otp.verify(mobile, otp):
            logger.warning("Login rejected: invalid OTP")
            raise UnauthorizedException(message="Invalid OTP", code="INVALID_OTP")

        if user is None:
            user = User(mobile=mobile, role=requested_role)
            await self._users.create(user)
            logger.info(f"User created on first mobile login: {user.id}")

        return await self.establish_session(user, device_info, user_agent)

    async def email_login(
        self,
        email: Optional[str],
        password: Optional[str],
        device_info: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        """
        Email + password login.

        Raises:
            ValidationException: Missing email or password
            UnauthorizedException: Unknown email, wrong password, or a
                mobile-only account
        """
        if not email or not password:
            raise ValidationException(
                message="Email and password are required",
                code="MISSING_FIELDS"
            )

        user = await self._users.find_by_email(email)
        if user is None:
            logger.warning("Email login rejected: unknown email")
            raise UnauthorizedException(
                message="Invalid email or password",
                code="INVALID_CREDENTIALS"
            )

        if not user.password_hash:
            raise UnauthorizedException(
                message="This account uses mobile login",
                code="MOBILE_LOGIN_REQUIRED"
            )

        if not self._hasher.verify(user.password_hash, password):
            logger.warning(f"Email login rejected: wrong password for user {user.id}")
            raise UnauthorizedException(
                message="Invalid email or password",
                code="INVALID_CREDENTIALS"
            )

        if self._hasher.needs_rehash(user.password_hash):
            user.password_hash = self._hasher.hash(password)
            logger.info(f"Password rehashed with current parameters for user {user.id}")

        return await self.establish_session(user, device_info, user_agent)

    async def establish_session(
        self,
        user: User,
        device_info: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        """
        Issue an access/refresh pair and record a new session for ``user``.

        Side Effects:
            - Drops expired sessions, appends the new one, enforces the cap
            - Updates last_login
            - Saves the user document once
        """
        rid = gen_refresh_id()
        refresh = self._tokens.sign_refresh(user.id, rid)
        access = self._tokens.sign_access(user.id, user.role.value)

        descriptor = (device_info or "").strip() or (user_agent or "").strip() or UNKNOWN_DEVICE

        self._sessions.cleanup_expired(user)
        self._sessions.add_session(user, descriptor, hash_refresh_id(rid))
        user.last_login = self._sessions.now()

        await self._users.save(user)

        logger.info(f"Login success: user {user.id} role={user.role.value} sessions={len(user.sessions)}")

        return AuthResult(access=access, refresh=refresh, user=user.public_profile())

    # ─────────────────────────────────────────────────────────────
    # Refresh / logout
    # ─────────────────────────────────────────────────────────────

    async def refresh(self, token: Optional[str]) -> AuthResult:
        """
        Rotate a refresh token and mint a new access token.

        A refresh token whose rid hash no longer matches any session
        (logged out, revoked, or already rotated away) is rejected, which is
        how a replayed token is detected.

        Raises:
            UnauthorizedException: NO_REFRESH_TOKEN, INVALID_REFRESH_TOKEN,
                SESSION_NOT_FOUND, SESSION_EXPIRED
            NotFoundException: USER_NOT_FOUND
        """
        if not token:
            raise UnauthorizedException(
                message="No refresh token provided",
                code="NO_REFRESH_TOKEN"
            )

        try:
            claims = self._tokens.verify_refresh(token)
        except TokenError as e:
            logger.warning(f"Refresh rejected: {e}")
            raise UnauthorizedException(
                message="Invalid or expired refresh token",
                code="INVALID_REFRESH_TOKEN"
            )

        user = await self._users.find_by_id(claims.sub)
        if user is None:
            raise NotFoundException(message="User not found", code="USER_NOT_FOUND")

        rid_hash = hash_refresh_id(claims.rid)
        session = self._sessions.find_session_by_hash(user, rid_hash)

        if session is None:
            logger.warning(f"Refresh rejected: no session matches token for user {user.id}")
            raise UnauthorizedException(message="Session not found", code="SESSION_NOT_FOUND")

        if session.is_expired(self._sessions.now()):
            self._sessions.remove_session(user, rid_hash)
            await self._users.save(user)
            raise UnauthorizedException(message="Session expired", code="SESSION_EXPIRED")

        new_rid = gen_refresh_id()
        new_refresh = self._tokens.sign_refresh(user.id, new_rid)
        self._sessions.rotate_session(session, hash_refresh_id(new_rid))
        await self._users.save(user)

        logger.info(f"Session {session.id} rotated for user {user.id}")

        return AuthResult(
            access=self._tokens.sign_access(user.id, user.role.value),
            refresh=new_refresh,
        )

    async def logout(self, token: Optional[str]) -> None:
        """
        End the session bound to ``token``, if any.

        Never raises: an absent, malformed or expired token simply means
        there is nothing to remove.
        """
        if not token:
            return

        try:
            claims = self._tokens.verify_refresh(token)
        except TokenError as e:
            logger.info(f"Logout with unusable refresh token: {e}")
            return

        try:
            user = await self._users.find_by_id(claims.sub)
            if user and self._sessions.remove_session(user, hash_refresh_id(claims.rid)):
                await self._users.save(user)
                logger.info(f"User logged out: {user.id}")
        except Exception as e:
            logger.error(f"Logout could not remove session: {e}")

    # ─────────────────────────────────────────────────────────────
    # Introspection / revocation
    # ─────────────────────────────────────────────────────────────

    async def me(self, user_id: str) -> dict:
        """
        Raises:
            NotFoundException: User no longer exists
        """
        return (await self._load_user(user_id)).public_profile()

    async def sessions(self, user_id: str) -> List[dict]:
        user = await self._load_user(user_id)
        return self._sessions.list_sessions(user)

    async def revoke_session(self, user_id: str, session_id: str) -> None:
        """
        Remove one of the caller's sessions.

        Raises:
            NotFoundException: Unknown user or session not owned by the caller
        """
        user = await self._load_user(user_id)

        if not self._sessions.remove_session_by_id(user, session_id):
            raise NotFoundException(message="Session not found", code="SESSION_NOT_FOUND")

        await self._users.save(user)
        logger.info(f"Session {session_id} revoked for user {user_id}")

    async def revoke_all_sessions(self, user_id: str) -> int:
        """
        Remove every session of the caller.

        Returns:
            Number of sessions removed
        """
        user = await self._load_user(user_id)
        removed = self._sessions.remove_all_sessions(user)
        if removed:
            await self._users.save(user)

        logger.info(f"Revoked {removed} sessions for user {user_id}")
        return removed

    # ─────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────

    async def _load_user(self, user_id: str) -> User:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundException(message="User not found", code="USER_NOT_FOUND")
        return user

    @staticmethod
    def _parse_role(role: Optional[str], default: UserRole) -> UserRole:
        if not role:
            return default

        try:
            parsed = UserRole(role)
        except ValueError:
            parsed = None

        if parsed not in SELF_ASSIGNABLE_ROLES:
            raise ValidationException(
                message=f"Invalid role: {role}",
                code="INVALID_ROLE",
                details={"allowed": sorted(r.value for r in SELF_ASSIGNABLE_ROLES)},
            )
        return parsed
