"""API dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from legacylens.core.database import get_db
from legacylens.services.processing import ProcessingService

DbSession = Annotated[Session, Depends(get_db)]


def get_processing_service(db: DbSession) -> ProcessingService:
    """Processing service bound to the request's session."""
    return ProcessingService(db)


Processing = Annotated[ProcessingService, Depends(get_processing_service)]
