import logging
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from vocab_srs.crud.progress_crud import SQLProgressRepository
from vocab_srs.db import session as db_session
from vocab_srs.services.srs_service import SRSService

log = logging.getLogger(__name__)


def get_db() -> Generator[Session, None, None]:
    """Provide one SQLAlchemy session per request.

    FastAPI caches dependencies within a request, so the repository and the
    route handler share this session. Whatever the handler did not commit is
    rolled back on close.
    """

    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_progress_repository(db: Session = Depends(get_db)) -> SQLProgressRepository:
    return SQLProgressRepository(db)


def get_srs_service(
    repository: SQLProgressRepository = Depends(get_progress_repository),
) -> SRSService:
    return SRSService(repository)
