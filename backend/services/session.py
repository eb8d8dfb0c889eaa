# backend/services/session.py
"""Session reconciliation.

Keeps the (identity, privileged-role) pair consistent with the backing
profile row. A session whose profile cannot be confirmed is revoked at the
provider before local state is cleared, so a stale token never keeps
authorising requests.

State machine::

    unauthenticated --(sign-in / persisted session)--> verifying
    verifying --(profile found)--> authenticated
    verifying --(profile missing or lookup error)--> revoked --> unauthenticated
    authenticated --(sign-out)--> unauthenticated
"""
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.users import Profile
from services import roles as role_service
from services.errors import AccountDeletedError, Unauthenticated
from utils.auth_provider import AuthEvent, UserSession

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    VERIFYING = "verifying"
    AUTHENTICATED = "authenticated"
    REVOKED = "revoked"


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str
    roles: FrozenSet[str]
    session: UserSession

    @property
    def is_admin(self) -> bool:
        return role_service.ADMIN in self.roles

    @property
    def effective_role(self) -> str:
        return role_service.effective_role(self.roles)


class ProfileDirectory:
    """Profile and role lookups used to verify an identity.

    A failed lookup rolls the session back before re-raising, so the
    revocation that follows can still write on the same session.
    """

    def __init__(self, db: Session):
        self.db = db

    def profile_exists(self, user_id: str) -> bool:
        try:
            return self.db.query(Profile.id).filter(Profile.id == user_id).first() is not None
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def roles_for(self, user_id: str) -> FrozenSet[str]:
        try:
            return role_service.roles_for(self.db, user_id)
        except SQLAlchemyError:
            self.db.rollback()
            raise


Observer = Callable[["SessionReconciler"], None]


class SessionReconciler:
    """Single writer of the current identity, with subscribe/notify semantics."""

    def __init__(self, provider, directory):
        self._provider = provider
        self._directory = directory
        self._lock = threading.RLock()
        self._generation = 0
        self._observers: List[Observer] = []
        self._subscription = None

        self.state = SessionState.UNAUTHENTICATED
        self.identity: Optional[Identity] = None
        self.last_error: Optional[Exception] = None

    # ---- observers ----
    def subscribe(self, callback: Observer) -> Callable[[], None]:
        self._observers.append(callback)

        def _unsubscribe():
            if callback in self._observers:
                self._observers.remove(callback)

        return _unsubscribe

    def _notify(self):
        for callback in list(self._observers):
            callback(self)

    @property
    def is_admin(self) -> bool:
        identity = self.identity
        return identity is not None and identity.is_admin

    # ---- lifecycle ----
    def _ensure_listening(self):
        if self._subscription is None:
            self._subscription = self._provider.on_auth_state_change(self.handle_auth_event)

    def start(self) -> SessionState:
        """Listen for provider events and verify any persisted session."""
        self._ensure_listening()
        session = self._provider.get_session()
        if session is not None:
            self._verify(session)
        return self.state

    def close(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._observers.clear()

    def handle_auth_event(self, event: AuthEvent, session: Optional[UserSession]):
        if event == AuthEvent.SIGNED_OUT or session is None:
            with self._lock:
                # A revocation pass completes its own transition
                if self.state == SessionState.REVOKED:
                    return
                self._generation += 1
                changed = self.identity is not None or self.state != SessionState.UNAUTHENTICATED
                self._clear()
            if changed:
                self._notify()
            return
        self._verify(session)

    def _clear(self):
        self.identity = None
        self.state = SessionState.UNAUTHENTICATED

    def _verify(self, session: UserSession) -> bool:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.state = SessionState.VERIFYING
            self.identity = None
            self.last_error = None

        # Lookups run outside the lock so a newer event can supersede this pass
        try:
            exists = self._directory.profile_exists(session.user_id)
            roles = self._directory.roles_for(session.user_id) if exists else frozenset()
        except Exception:
            logger.exception("Profile verification failed for %s", session.user_id)
            exists, roles = False, frozenset()

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding superseded verification of %s", session.user_id)
                return False

            if exists:
                self.identity = Identity(
                    user_id=session.user_id,
                    email=session.email,
                    roles=frozenset(roles),
                    session=session,
                )
                self.state = SessionState.AUTHENTICATED
            else:
                self._revoke(session)

        self._notify()
        return exists

    def _revoke(self, session: UserSession):
        self.state = SessionState.REVOKED
        logger.warning("No profile for identity %s; revoking session %s", session.user_id, session.session_id)
        try:
            self._provider.sign_out()
        except Exception:
            logger.exception("Provider sign-out failed while revoking %s", session.session_id)
        self._clear()
        self.last_error = AccountDeletedError()

    # ---- operations ----
    def require_identity(self) -> Identity:
        identity = self.identity
        if identity is not None and self.state == SessionState.AUTHENTICATED:
            return identity
        if self.last_error is not None:
            raise self.last_error
        raise Unauthenticated()

    def sign_up(self, email: str, password: str, full_name: str, phone: Optional[str] = None):
        return self._provider.sign_up(email, password, {"full_name": full_name, "phone": phone})

    def sign_in(self, email: str, password: str) -> Identity:
        self._ensure_listening()
        session = self._provider.sign_in(email, password)
        identity = self.identity
        if identity is None or identity.session.session_id != session.session_id:
            raise self.last_error or AccountDeletedError()
        return identity

    def sign_out(self):
        self._ensure_listening()
        self._provider.sign_out()

    def change_password(self, new_password: str):
        self.require_identity()
        return self._provider.update_user(password=new_password)

    def reset_password(self, email: str, redirect_to: Optional[str] = None):
        return self._provider.reset_password_for_email(email, redirect_to)

    def complete_password_reset(self, token: str, new_password: str):
        return self._provider.verify_recovery(token, new_password)
