# backend/routes/banners.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import get_db
from models.banner import Banner
from schemas.banner import BannerCreate, BannerOut, BannerUpdate
from services.errors import MutationError
from services.session import Identity
from utils.audit import write_log, client_ip
from utils.dependencies import admin_required

router = APIRouter(prefix="/admin/banners", tags=["Admin Banners"])


def _get_banner_or_404(db: Session, banner_id: int) -> Banner:
    banner = db.query(Banner).filter(Banner.id == banner_id).first()
    if not banner:
        raise HTTPException(status_code=404, detail="Banner not found")
    return banner


def _save(db: Session, action: str):
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise MutationError(f"Failed to {action} banner")


@router.get("", response_model=List[BannerOut])
def list_banners(db: Session = Depends(get_db), admin: Identity = Depends(admin_required)):
    return db.query(Banner).order_by(Banner.display_order.asc(), Banner.id.asc()).all()


@router.post("", response_model=BannerOut, status_code=status.HTTP_201_CREATED)
def create_banner(
    payload: BannerCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    banner = Banner(**payload.model_dump())
    db.add(banner)
    _save(db, "create")
    db.refresh(banner)
    write_log(db, user_id=admin.user_id, action="BANNER_CREATE", resource="banners", status="SUCCESS",
              ip=client_ip(request), meta={"banner_id": banner.id})
    return banner


@router.patch("/{banner_id}", response_model=BannerOut)
def update_banner(
    banner_id: int,
    payload: BannerUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    banner = _get_banner_or_404(db, banner_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("title", "image_url"):
        if field in changes and not (changes[field] or "").strip():
            raise HTTPException(status_code=400, detail=f"{field} cannot be empty")
    for key, value in changes.items():
        setattr(banner, key, value)
    _save(db, "update")
    db.refresh(banner)
    write_log(db, user_id=admin.user_id, action="BANNER_UPDATE", resource="banners", status="SUCCESS",
              ip=client_ip(request), meta={"banner_id": banner.id, "fields": sorted(changes)})
    return banner


# Flip visibility on the storefront carousel
@router.post("/{banner_id}/toggle", response_model=BannerOut)
def toggle_banner(
    banner_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    banner = _get_banner_or_404(db, banner_id)
    banner.is_active = not banner.is_active
    _save(db, "update")
    db.refresh(banner)
    write_log(db, user_id=admin.user_id, action="BANNER_TOGGLE", resource="banners", status="SUCCESS",
              ip=client_ip(request), meta={"banner_id": banner.id, "is_active": banner.is_active})
    return banner


@router.delete("/{banner_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_banner(
    banner_id: int,
    request: Request,
    db: Session = Depends(get_db),
    admin: Identity = Depends(admin_required),
):
    banner = _get_banner_or_404(db, banner_id)
    db.delete(banner)
    _save(db, "delete")
    write_log(db, user_id=admin.user_id, action="BANNER_DELETE", resource="banners", status="SUCCESS",
              ip=client_ip(request), meta={"banner_id": banner_id})
