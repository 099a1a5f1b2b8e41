# ppe_compliance/router/auth.py
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from ppe_compliance import config
from ppe_compliance.database import get_db
from ppe_compliance.enums import UserRole
from ppe_compliance.models import User
from ppe_compliance.schemas import LoginSchema, TokenResponse, UserOut

router = APIRouter(tags=["Auth"])
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login")


def _normalize_password_bytes(password) -> bytes:
    if password is None:
        password = ""
    if not isinstance(password, (str, bytes)):
        password = str(password)
    if isinstance(password, str):
        pwd_bytes = password.encode("utf-8", errors="ignore")
    else:
        pwd_bytes = password
    return pwd_bytes[:72]


def hash_password(password) -> str:
    pwd = _normalize_password_bytes(password)
    hashed = bcrypt.hashpw(pwd, bcrypt.gensalt())
    return hashed.decode("utf-8", errors="ignore")


def verify_password(plain_password, hashed_password) -> bool:
    try:
        pwd = _normalize_password_bytes(plain_password)
        return bcrypt.checkpw(pwd, hashed_password.encode("utf-8"))
    except ValueError:
        return False


def authenticate_user(db: Session, email: str, password: str):
    result = db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if not user or not user.is_active or not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token(user: User) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=config.ACCESS_TOKEN_EXPIRE_HOURS)
    token_data = {"sub": str(user.id), "email": user.email, "role": user.role.value, "exp": expire}
    return jwt.encode(token_data, config.SECRET_KEY, algorithm=config.ALGORITHM)


@router.post("/login", response_model=TokenResponse)
def login(data: LoginSchema, db: Session = Depends(get_db)):
    user = authenticate_user(db, data.email, data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return TokenResponse(access_token=create_access_token(user), user=UserOut.model_validate(user))


# -----------------------------
# Dependencies
# -----------------------------
def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
        user_id: str = payload.get("sub")
        if not user_id:
            raise HTTPException(status_code=401, detail="Invalid token")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    result = db.execute(select(User).where(User.id == int(user_id)))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def require_roles(*roles: UserRole):
    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Not authorized for this resource")
        return current_user
    return dependency


require_supervisor = require_roles(UserRole.SUPERVISOR)
require_analyst = require_roles(UserRole.ANALYST)


def verify_ingest_key(x_api_key: Optional[str] = Header(default=None)):
    if config.INGEST_API_KEY and x_api_key != config.INGEST_API_KEY:
        raise HTTPException(status_code=401, detail="Invalid ingest API key")


@router.get("/me", response_model=UserOut)
def read_profile(current_user: User = Depends(get_current_user)):
    return current_user
