"""Shared API dependencies."""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session, select

from journal.database import get_session
from journal.models.user import User
from journal.services.auth import decode_access_token
from journal.services.price_feed import PriceFeed, get_price_feed
from journal.services.uploads import ScreenshotUploader, get_uploader
from journal.store import JournalStore

bearer_scheme = HTTPBearer()


def user_from_token(token: str, session: Session) -> User | None:
    """Resolve a JWT to an active user, or None."""
    username = decode_access_token(token)
    if username is None:
        return None
    user = session.exec(select(User).where(User.username == username)).first()
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """Validate JWT and return the current user."""
    user = user_from_token(credentials.credentials, session)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    return user


def get_admin_user(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin role required",
        )
    return user


def get_store(session: Session = Depends(get_session)) -> JournalStore:
    return JournalStore(session)


def get_feed() -> PriceFeed:
    return get_price_feed()


def get_screenshot_uploader() -> ScreenshotUploader:
    return get_uploader()
