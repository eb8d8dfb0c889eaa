# backend/utils/auth_provider.py
"""Authentication provider: identities, sessions and auth-state events.

The rest of the application treats this module as the hosted auth service:
it only calls ``sign_up``, ``sign_in``, ``sign_out``, ``get_session``,
``on_auth_state_change``, ``update_user`` and ``reset_password_for_email``.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
from urllib.parse import urlencode, urlsplit

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from models.users import AuthUser, AuthSession, Profile, UserRole
from services.errors import AuthError, EmailTakenError
from utils.hashing import get_password_hash, verify_password
from utils.tokenJWT import create_access_token, decode_token

logger = logging.getLogger(__name__)


class AuthEvent(str, enum.Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


@dataclass(frozen=True)
class UserSession:
    access_token: str
    session_id: str
    user_id: str
    email: str
    expires_at: datetime


AuthListener = Callable[[AuthEvent, Optional[UserSession]], None]


class Subscription:
    def __init__(self, listeners: List[AuthListener], callback: AuthListener):
        self._listeners = listeners
        self._callback = callback

    def unsubscribe(self):
        if self._callback in self._listeners:
            self._listeners.remove(self._callback)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone=True columns
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def recovery_link_base(redirect_to: Optional[str]) -> str:
    """Where a recovery link points: the caller's page if it is on the storefront's own origin."""
    default = f"{settings.FRONTEND_URL.rstrip('/')}/auth"
    if not redirect_to:
        return default
    allowed = urlsplit(settings.FRONTEND_URL)
    target = urlsplit(redirect_to)
    if (target.scheme, target.netloc) != (allowed.scheme, allowed.netloc):
        logger.warning("Ignoring recovery redirect outside %s: %s", settings.FRONTEND_URL, redirect_to)
        return default
    return redirect_to


class LocalAuthProvider:
    """Auth service bound to one DB session and, optionally, one bearer token."""

    def __init__(self, db: Session, access_token: Optional[str] = None):
        self.db = db
        self._access_token = access_token
        self._session: Optional[UserSession] = None
        self._listeners: List[AuthListener] = []

    # ---- events ----
    def on_auth_state_change(self, callback: AuthListener) -> Subscription:
        self._listeners.append(callback)
        return Subscription(self._listeners, callback)

    def _emit(self, event: AuthEvent, session: Optional[UserSession]):
        for listener in list(self._listeners):
            listener(event, session)

    # ---- sessions ----
    def get_session(self) -> Optional[UserSession]:
        if self._session is not None:
            return self._session
        if not self._access_token:
            return None

        payload = decode_token(self._access_token)
        if not payload or payload.get("typ") != "access":
            return None

        row = self.db.query(AuthSession).filter(AuthSession.id == payload.get("sid")).first()
        if row is None or row.revoked_at is not None or _aware(row.expires_at) <= _utcnow():
            return None
        if row.user_id != payload.get("sub") or row.user is None:
            return None

        self._session = UserSession(
            access_token=self._access_token,
            session_id=row.id,
            user_id=row.user_id,
            email=row.user.email,
            expires_at=_aware(row.expires_at),
        )
        return self._session

    def sign_up(self, email: str, password: str, metadata: Optional[dict] = None) -> AuthUser:
        normalized = normalize_email(email)
        metadata = metadata or {}

        exists = self.db.query(AuthUser).filter(func.lower(AuthUser.email) == normalized).first()
        if exists:
            raise EmailTakenError()

        user = AuthUser(email=normalized, password_hash=get_password_hash(password), user_metadata=metadata)
        self.db.add(user)
        try:
            self.db.flush()
            # New identities get a profile and the default role in the same transaction
            self.db.add(Profile(
                id=user.id,
                full_name=metadata.get("full_name") or "",
                email=normalized,
                phone=metadata.get("phone"),
            ))
            self.db.add(UserRole(user_id=user.id, role="customer"))
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise EmailTakenError()

        self.db.refresh(user)
        logger.info("Registered identity %s", user.id)
        return user

    def sign_in(self, email: str, password: str) -> UserSession:
        normalized = normalize_email(email)
        user = self.db.query(AuthUser).filter(AuthUser.email == normalized).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthError("Invalid login credentials")

        expires_at = _utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        row = AuthSession(user_id=user.id, expires_at=expires_at)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)

        token = create_access_token(
            {"sub": user.id, "sid": row.id, "email": user.email, "typ": "access"},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        self._access_token = token
        self._session = UserSession(
            access_token=token,
            session_id=row.id,
            user_id=user.id,
            email=user.email,
            expires_at=expires_at,
        )
        self._emit(AuthEvent.SIGNED_IN, self._session)
        return self._session

    def sign_out(self) -> None:
        session = self.get_session()
        if session is not None:
            row = self.db.query(AuthSession).filter(AuthSession.id == session.session_id).first()
            if row is not None and row.revoked_at is None:
                row.revoked_at = _utcnow()
                self.db.commit()
                logger.info("Revoked session %s of %s", row.id, row.user_id)
        self._session = None
        self._access_token = None
        self._emit(AuthEvent.SIGNED_OUT, None)

    # ---- account maintenance ----
    def update_user(self, password: Optional[str] = None, **metadata) -> AuthUser:
        session = self.get_session()
        if session is None:
            raise AuthError("Auth session missing")
        user = self.db.query(AuthUser).filter(AuthUser.id == session.user_id).first()
        if user is None:
            raise AuthError("User not found")

        if password is not None:
            user.password_hash = get_password_hash(password)
        if metadata:
            user.user_metadata = {**(user.user_metadata or {}), **metadata}
        self.db.commit()
        self.db.refresh(user)
        self._emit(AuthEvent.USER_UPDATED, session)
        return user

    def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> Optional[str]:
        """Issue a recovery link; unknown addresses are ignored silently."""
        normalized = normalize_email(email)
        user = self.db.query(AuthUser).filter(AuthUser.email == normalized).first()
        if user is None:
            logger.info("Password reset requested for unknown address")
            return None

        token = create_access_token(
            {"sub": user.id, "typ": "recovery"},
            expires_delta=timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES),
        )
        base = recovery_link_base(redirect_to)
        link = f"{base}?{urlencode({'type': 'recovery', 'token': token})}"
        # No mail transport is configured; the link is handed to the operator log
        logger.info("Password recovery link for %s: %s", user.id, link)
        return link

    def verify_recovery(self, token: str, new_password: str) -> AuthUser:
        payload = decode_token(token)
        if not payload or payload.get("typ") != "recovery":
            raise AuthError("Recovery link is invalid or has expired")
        user = self.db.query(AuthUser).filter(AuthUser.id == payload.get("sub")).first()
        if user is None:
            raise AuthError("Recovery link is invalid or has expired")

        user.password_hash = get_password_hash(new_password)
        # Existing sessions are ended when a password is recovered
        self.db.query(AuthSession).filter(
            AuthSession.user_id == user.id, AuthSession.revoked_at.is_(None)
        ).update({AuthSession.revoked_at: _utcnow()}, synchronize_session=False)
        self.db.commit()
        self._emit(AuthEvent.PASSWORD_RECOVERY, None)
        return user
