# utils/dependencies.py
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from services.cart import CartService
from services.session import Identity, ProfileDirectory, SessionReconciler
from utils.auth_provider import LocalAuthProvider
from utils.storage import ObjectStorage

# Authorization scheme; anonymous requests are allowed through to the reconciler
bearer_scheme = HTTPBearer(auto_error=False)


# One reconciler per request, seeded with the request's bearer token
def get_reconciler(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
):
    token = credentials.credentials if credentials else None
    provider = LocalAuthProvider(db, access_token=token)
    reconciler = SessionReconciler(provider, ProfileDirectory(db))
    reconciler.start()
    try:
        yield reconciler
    finally:
        reconciler.close()


# Retrieve the verified identity or answer 401
def get_current_identity(reconciler: SessionReconciler = Depends(get_reconciler)) -> Identity:
    return reconciler.require_identity()


# Route guard for the admin console
def admin_required(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return identity


def get_cart_service(
    db: Session = Depends(get_db),
    reconciler: SessionReconciler = Depends(get_reconciler),
):
    cart = CartService(db, reconciler)
    try:
        yield cart
    finally:
        cart.close()


def get_storage() -> ObjectStorage:
    return ObjectStorage()
