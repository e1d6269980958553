from passlib.context import CryptContext
from database import SessionLocal, User
from config import settings
from jose import jwt, JWTError
from datetime import datetime, timedelta
from typing import Optional

from logging_conf import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"

# argon2 como esquema principal, bcrypt para hashes antiguos
pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")

def verify_password(plain_password, hashed_password):
    if not plain_password or not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.error(f"Error verificando contraseña: {e}")
        return False

def get_password_hash(password):
    if not password:
        return None
    return pwd_context.hash(password)

def authenticate_user(db, username: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.username == username).first()
    if not user or not verify_password(password, user.password):
        return None
    return user

def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)

def decode_access_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")

def init_admin_user():
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.username == settings.ADMIN_USERNAME).first()
        if not user:
            hashed_password = get_password_hash(settings.ADMIN_PASSWORD)
            if not hashed_password:
                logger.error("No se pudo generar el hash de la contraseña de administrador")
                return
            admin_user = User(
                username=settings.ADMIN_USERNAME,
                password=hashed_password,
                is_admin=1
            )
            db.add(admin_user)
            db.commit()
            logger.info(f"Administrador {settings.ADMIN_USERNAME} creado")
    finally:
        db.close()
