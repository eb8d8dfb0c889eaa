import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from models.log import Log

logger = logging.getLogger(__name__)

def write_log(db: Session, *, user_id, action, resource, status="SUCCESS", ip=None, meta=None):
    entry = Log(user_id=user_id, action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    try:
        db.commit()
    except SQLAlchemyError:
        # The audited action already happened; losing its trail must not undo it
        db.rollback()
        logger.exception("Failed to write audit log %s/%s", resource, action)

def client_ip(request) -> str | None:
    if request is None or request.client is None:
        return None
    return request.client.host
