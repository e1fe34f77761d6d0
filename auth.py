"""
Caller identity and role checks

Credentials arrive as HTTP Basic. current_user turns them into a User with a
numeric id before any cart or profile query runs; require_admin guards the
catalog mutations. Tokens are not issued here.
"""
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from passlib.context import CryptContext
from sqlalchemy.engine import Engine

from database import get_engine
from errors import ForbiddenError, UnauthorizedError
from repositories import UserRepository
from schemas import ROLE_ADMIN, User

logger = logging.getLogger(__name__)

# bcrypt stays verifiable for hashes already in the users table
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")

basic = HTTPBasic(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def authenticate(users: UserRepository, username: str, password: str) -> Optional[User]:
    row = users.get_by_username(username)
    if not row:
        logger.info("Unknown user %r", username)
        return None
    if not pwd_context.verify(password, row["hashed_password"]):
        logger.info("Bad password for %r", username)
        return None
    return User(id=row["user_id"], username=row["username"], role=row["role"])


def current_user(
    credentials: Optional[HTTPBasicCredentials] = Depends(basic),
    engine: Engine = Depends(get_engine),
) -> User:
    if credentials is None:
        raise UnauthorizedError()
    user = authenticate(UserRepository(engine), credentials.username, credentials.password)
    if user is None:
        raise UnauthorizedError("Invalid username or password")
    return user


def require_admin(user: User = Depends(current_user)) -> User:
    if user.role != ROLE_ADMIN:
        logger.info("User %s denied admin action", user.username)
        raise ForbiddenError()
    return user
