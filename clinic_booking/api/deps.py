from fastapi import Depends
from sqlalchemy.orm import Session

from ..core.database import get_db, SessionLocal
from ..core.locks import get_lock_manager
from ..services.directory_service import DirectoryService
from ..services.scheduling_service import SchedulingService

def get_scheduling_service() -> SchedulingService:
    """Scheduling service; it opens its own session per operation."""
    return SchedulingService(SessionLocal, get_lock_manager())

def get_directory_service(db: Session = Depends(get_db)) -> DirectoryService:
    """Directory service bound to the request session."""
    return DirectoryService(db)
