"""Admin endpoints (password-protected).

Endpoints:
- POST /api/admin/login - Exchange the admin password for a token
- GET /api/admin/check - Validate the X-Admin-Token header
- PUT /api/admin/password - Change the admin password
- GET/PUT /api/admin/users, DELETE /api/admin/users/{id} - Manage users
- PUT /api/admin/settings - Visitor toggles
"""

from fastapi import APIRouter, Depends, Header, status
from sqlalchemy.orm import Session
from typing import Optional

from .. import schemas
from ..db import get_db
from ..deps import require_admin
from ..services import admin as admin_service
from ..services import identity

router = APIRouter(prefix="/admin")


@router.post("/login", response_model=schemas.AdminTokenOut)
def login(body: schemas.AdminLogin, db: Session = Depends(get_db)):
    return schemas.AdminTokenOut(token=admin_service.login(db, body.password))


@router.get("/check")
def check(
    db: Session = Depends(get_db),
    x_admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
):
    return {"authenticated": admin_service.verify_token(db, x_admin_token)}


@router.put("/password", dependencies=[Depends(require_admin)])
def change_password(body: schemas.PasswordChange, db: Session = Depends(get_db)):
    admin_service.change_password(db, body.current_password, body.new_password)
    return {"ok": True}


@router.get("/users", response_model=list[schemas.UserOut], dependencies=[Depends(require_admin)])
def list_users(db: Session = Depends(get_db)):
    return identity.list_users(db)


@router.put("/users", response_model=schemas.UserOut, dependencies=[Depends(require_admin)])
def update_user(body: schemas.UserUpdate, db: Session = Depends(get_db)):
    """Toggle whitelist, rename, change role, or unbind a device."""
    return identity.update_user(db, body)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_admin)])
def delete_user(user_id: int, db: Session = Depends(get_db)):
    identity.delete_user(db, user_id)


@router.put("/settings", response_model=schemas.VisitorSettings, dependencies=[Depends(require_admin)])
def update_settings(body: schemas.VisitorSettingsUpdate, db: Session = Depends(get_db)):
    return admin_service.update_visitor_settings(db, body)
