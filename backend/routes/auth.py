# backend/routes/auth.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import Profile
from schemas import user as schemas
from services.errors import AuthError
from services.session import Identity, SessionReconciler
from utils.audit import write_log, client_ip
from utils.dependencies import get_current_identity, get_reconciler

router = APIRouter(prefix="/auth", tags=["Auth"])


def _identity_out(db: Session, identity: Identity) -> schemas.IdentityResponse:
    profile = db.query(Profile).filter(Profile.id == identity.user_id).first()
    return schemas.IdentityResponse(
        id=identity.user_id,
        email=identity.email,
        role=identity.effective_role,
        is_admin=identity.is_admin,
        full_name=profile.full_name if profile else None,
        phone=profile.phone if profile else None,
    )


# Register a new account (profile and default role are created with it)
@router.post("/signup", response_model=schemas.IdentityResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: schemas.UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    reconciler: SessionReconciler = Depends(get_reconciler),
):
    try:
        user = reconciler.sign_up(payload.email, payload.password, payload.full_name, payload.phone)
    except AuthError as e:
        write_log(db, user_id=None, action="REGISTER", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": payload.email, "reason": e.message})
        raise

    write_log(db, user_id=user.id, action="REGISTER", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": user.email})
    return schemas.IdentityResponse(
        id=user.id, email=user.email, role="customer", is_admin=False,
        full_name=payload.full_name, phone=payload.phone,
    )


# Authenticate, verify the profile and issue a session token
@router.post("/login", response_model=schemas.Token)
def login(
    payload: schemas.UserLogin,
    request: Request,
    db: Session = Depends(get_db),
    reconciler: SessionReconciler = Depends(get_reconciler),
):
    try:
        identity = reconciler.sign_in(payload.email, payload.password)
    except AuthError as e:
        write_log(db, user_id=None, action="LOGIN", resource="auth", status="FAIL",
                  ip=client_ip(request), meta={"email": payload.email, "reason": e.message})
        raise

    write_log(db, user_id=identity.user_id, action="LOGIN", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": identity.email})
    return schemas.Token(
        access_token=identity.session.access_token,
        expires_at=identity.session.expires_at,
        user=_identity_out(db, identity),
    )


@router.post("/logout")
def logout(
    request: Request,
    db: Session = Depends(get_db),
    reconciler: SessionReconciler = Depends(get_reconciler),
):
    identity = reconciler.require_identity()
    reconciler.sign_out()
    write_log(db, user_id=identity.user_id, action="LOGOUT", resource="auth", status="SUCCESS",
              ip=client_ip(request))
    return {"message": "Logged out successfully"}


# Retrieve current verified identity with its role flag
@router.get("/me", response_model=schemas.IdentityResponse)
def me(db: Session = Depends(get_db), identity: Identity = Depends(get_current_identity)):
    return _identity_out(db, identity)


@router.post("/password")
def change_password(
    payload: schemas.PasswordChange,
    request: Request,
    db: Session = Depends(get_db),
    reconciler: SessionReconciler = Depends(get_reconciler),
):
    identity = reconciler.require_identity()
    reconciler.change_password(payload.new_password)
    write_log(db, user_id=identity.user_id, action="PASSWORD_CHANGE", resource="auth", status="SUCCESS",
              ip=client_ip(request))
    return {"message": "Password changed successfully"}


# Always answers the same way so addresses cannot be enumerated
@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
def request_password_reset(
    payload: schemas.PasswordResetRequest,
    reconciler: SessionReconciler = Depends(get_reconciler),
):
    reconciler.reset_password(payload.email, payload.redirect_to)
    return {"message": "Password reset email sent! Check your inbox."}


@router.post("/password-reset/confirm")
def confirm_password_reset(
    payload: schemas.PasswordResetConfirm,
    request: Request,
    db: Session = Depends(get_db),
    reconciler: SessionReconciler = Depends(get_reconciler),
):
    user = reconciler.complete_password_reset(payload.token, payload.new_password)
    write_log(db, user_id=user.id, action="PASSWORD_RESET", resource="auth", status="SUCCESS",
              ip=client_ip(request))
    return {"message": "Password updated. Please log in again."}
