from typing import Generator
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.core.clock import BusinessClock, get_business_clock
from app.core.security import decode_access_token
from app.db.database import SessionLocal
from app.db.models.managers import Managers
from app.services.shift_generation.notifications import EventPublisher, get_event_publisher

security = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_clock() -> BusinessClock:
    return get_business_clock()


def get_publisher() -> EventPublisher:
    return get_event_publisher()


def get_current_manager(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Managers:
    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    manager = db.query(Managers).filter(Managers.id == token_data.manager_id).first()
    if not manager or manager.is_deleted:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Manager not found")

    if not manager.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account disabled")

    return manager


def require_shift_creator(
    current_manager: Managers = Depends(get_current_manager),
) -> Managers:
    """Require the manager to be allowed to create shifts"""
    if not current_manager.can_create_shifts:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to create shifts")
    return current_manager
