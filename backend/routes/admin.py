# backend/routes/admin.py
from fastapi import APIRouter, Depends, HTTPException, status, Query, Request
from typing import Optional
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db
from models.users import Profile, UserRole
from schemas.user import RoleUpdate, UserAdminRow, UsersPage
from services import roles as role_service
from services.errors import LastAdminError, MutationError
from services.session import Identity
from utils.audit import write_log, client_ip
from utils.dependencies import admin_required

router = APIRouter(prefix="/admin/users", tags=["Admin"])


# Retrieve profiles with their effective role (Admin only)
@router.get("", response_model=UsersPage)
def get_all_users(
    q: Optional[str] = Query(None, description="Search by name or email"),
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    query = db.query(Profile)

    if q:
        like = f"%{q.strip()}%"
        query = query.filter(or_(Profile.full_name.ilike(like), Profile.email.ilike(like)))

    profiles = query.order_by(Profile.created_at.desc(), Profile.email.asc()).all()

    roles_by_user = {}
    for user_id, role in db.query(UserRole.user_id, UserRole.role).all():
        roles_by_user.setdefault(user_id, set()).add(role)

    items = [
        UserAdminRow(
            id=p.id,
            full_name=p.full_name,
            email=p.email,
            phone=p.phone,
            role=role_service.effective_role(roles_by_user.get(p.id, ())),
            created_at=p.created_at,
        )
        for p in profiles
    ]
    return {"items": items, "total": len(items)}


# Update user role, refusing to demote the last administrator (Admin only)
@router.put("/{user_id}/role")
def update_user_role(
    user_id: str,
    new_role: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    try:
        role = role_service.change_role(db, user_id, new_role.role)
    except LastAdminError as e:
        write_log(db, user_id=admin.user_id, action="ROLE_CHANGE", resource="users", status="FAIL",
                  ip=client_ip(request), meta={"target": user_id, "role": new_role.role, "reason": e.message})
        raise

    write_log(db, user_id=admin.user_id, action="ROLE_CHANGE", resource="users", status="SUCCESS",
              ip=client_ip(request), meta={"target": user_id, "role": role})
    return {"message": "Role updated successfully", "id": user_id, "role": role}


# Delete a user's profile and role rows (Admin only)
@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    # Prevent self-deletion
    if user_id == admin.user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")

    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    email = profile.email
    try:
        db.query(UserRole).filter(UserRole.user_id == user_id).delete(synchronize_session=False)
        db.delete(profile)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise MutationError("Failed to delete user")

    write_log(db, user_id=admin.user_id, action="USER_DELETE", resource="users", status="SUCCESS",
              ip=client_ip(request), meta={"target": user_id, "email": email})
    return {"message": f"User {email} has been deleted"}
