# app/api/routes_auth.py
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_db, current_user
from app.core.security import verify_password
from app.models.user import User
from app.schemas.auth import LoginIn, TokenOut, UserOut
from app.utils.jwt import create_access_token
from app.utils.resp import ok, err

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login")
def login(payload: LoginIn, db: Session = Depends(get_db)):
    email = payload.email.strip().lower()
    user = db.query(User).filter(User.email == email).first()

    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning("Failed login for %s", email)
        return err("Invalid email or password", 401)
    if not user.is_active:
        return err("User inactive", 403)

    token = create_access_token(user_id=user.id, email=user.email, role=user.role)
    logger.info("User %s logged in", user.email)
    return ok(TokenOut(access_token=token, user=UserOut.model_validate(user)))


@router.get("/me")
def me(user: User = Depends(current_user)):
    return ok(UserOut.model_validate(user))
