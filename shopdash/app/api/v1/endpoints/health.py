from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shopdash.app.core.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
def health(db: Session = Depends(get_db)) -> dict[str, str]:
    """Liveness probe with a database round-trip."""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as exc:
        logger.error("Health check database probe failed: %s", exc)
        database = "unavailable"
    return {"status": "ok", "database": database}
