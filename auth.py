import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import quote

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

import crud
import models
import schemas
from config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, COOKIE_NAME, LOGIN_PATH, SECRET_KEY
from database import get_db
from guard import AuthContext, RouteGuard

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/token")

# Funciones de autenticación
def verify_password(plain_password: str, hashed_password: str):
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str):
    return pwd_context.hash(password)

def authenticate_user(db: Session, email: str, password: str):
    user = crud.get_user_by_email(db, email)
    if not user:
        return False
    if not verify_password(password, user.hashed_password):
        return False
    return user

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def user_from_token(db: Session, token: Optional[str]):
    """Devuelve el usuario del token o None si no es válido"""
    if not token:
        return None
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    email = payload.get("sub")
    if email is None:
        return None
    return crud.get_user_by_email(db, email=email)

async def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
    user = user_from_token(db, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

async def get_admin_user(current_user: models.User = Depends(get_current_user)):
    if current_user.role != "admin":
        raise HTTPException(status_code=403, detail="Se requieren privilegios de administrador")
    return current_user

def get_user_from_cookie(request: Request, db: Session = Depends(get_db)):
    return user_from_token(db, request.cookies.get(COOKIE_NAME))

def login_url(next_path: str) -> str:
    return f"{LOGIN_PATH}?redirect={quote(next_path, safe='/')}"

def guard_request(request: Request, db: Session):
    """Evalúa la guardia de una página protegida con la sesión de la cookie.

    Devuelve la guardia y el destino de redirección (si lo hubo).
    """
    next_path = request.url.path
    if request.url.query:
        next_path = f"{next_path}?{request.url.query}"

    destinations = []
    context = AuthContext()
    guard = RouteGuard(destinations.append, login_path=login_url(next_path))
    unsubscribe = guard.attach(context)
    try:
        context.resolve(get_user_from_cookie(request, db))
    finally:
        unsubscribe()
        context.close()
    return guard, (destinations[0] if destinations else None)

def register_user(db: Session, user: schemas.UserCreate):
    if crud.get_user_by_email(db, email=user.email):
        raise ValueError("Email ya registrado")
    db_user = crud.create_user(db, user=user, hashed_password=get_password_hash(user.password))
    logger.info("Usuario registrado: id=%s rol=%s", db_user.id, db_user.role)
    return db_user
