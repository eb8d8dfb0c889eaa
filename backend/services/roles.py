# backend/services/roles.py
import logging
from typing import FrozenSet, Iterable, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.users import Profile, UserRole
from services.errors import LastAdminError, MutationError, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

CUSTOMER = "customer"
ADMIN = "admin"

# Higher rank wins when a user holds several roles
ROLE_RANK = {CUSTOMER: 0, ADMIN: 1}
VALID_ROLES = tuple(ROLE_RANK)


def effective_role(roles: Iterable[str]) -> str:
    known = [r for r in roles if r in ROLE_RANK]
    if not known:
        return CUSTOMER
    return max(known, key=ROLE_RANK.__getitem__)


def roles_for(db: Session, user_id: str) -> FrozenSet[str]:
    rows = db.query(UserRole.role).filter(UserRole.user_id == user_id).all()
    return frozenset(r[0] for r in rows)


def admin_user_ids(db: Session) -> Set[str]:
    rows = db.query(UserRole.user_id).filter(UserRole.role == ADMIN).distinct().all()
    return {r[0] for r in rows}


def ensure_not_last_admin(db: Session, user_id: str, new_role: str) -> None:
    """Reject a change that would leave the console without any administrator."""
    if new_role == ADMIN:
        return
    admins = admin_user_ids(db)
    if len(admins) == 1 and user_id in admins:
        raise LastAdminError()


def change_role(db: Session, user_id: str, new_role: str) -> str:
    if new_role not in VALID_ROLES:
        raise ValidationFailed({"role": f"Role must be one of: {', '.join(VALID_ROLES)}"})

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile is None:
        raise NotFound("User not found")

    ensure_not_last_admin(db, user_id, new_role)

    try:
        rows = db.query(UserRole).filter(UserRole.user_id == user_id).all()
        if rows:
            # Every stored row follows the change, as the console shows one role
            for row in rows:
                row.role = new_role
        else:
            db.add(UserRole(user_id=user_id, role=new_role))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Role change failed for %s", user_id)
        raise MutationError("Failed to update role")

    logger.info("Role of %s set to %s", user_id, new_role)
    return new_role
