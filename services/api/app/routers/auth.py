from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..db import get_db
from ..services import identity

router = APIRouter()


def _auth_out(user) -> schemas.AuthOut:
    return schemas.AuthOut(
        authenticated=True,
        user_id=user.id,
        name=user.name,
        role=user.role,
        is_whitelisted=user.is_whitelisted,
    )


@router.post("/auth", response_model=schemas.AuthOut)
def authenticate(body: schemas.AuthRequest, db: Session = Depends(get_db)):
    """Bind this device to a household role, or register it as a visitor."""
    user = identity.authenticate(db, body.role, body.fingerprint, body.device_name)
    return _auth_out(user)


@router.get("/auth", response_model=schemas.AuthOut)
def check_auth(fingerprint: Optional[str] = None, db: Session = Depends(get_db)):
    user = identity.lookup(db, fingerprint)
    if user is None:
        return schemas.AuthOut(authenticated=False)
    return _auth_out(user)
