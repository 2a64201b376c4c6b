# This project was developed with assistance from AI tools.
"""Liveness and dependency health checks."""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from resale_db import get_db

from .. import __version__

logger = logging.getLogger(__name__)

router = APIRouter()


class HealthItem(BaseModel):
    name: str
    status: str
    message: str
    version: str | None = None


@router.get("/", response_model=list[HealthItem])
async def health(session: AsyncSession = Depends(get_db)) -> list[HealthItem]:
    """Report API and database health."""
    items = [HealthItem(name="API", status="healthy", message="API is running", version=__version__)]
    try:
        await session.execute(text("SELECT 1"))
        items.append(HealthItem(name="Database", status="healthy", message="PostgreSQL connection ok"))
    except SQLAlchemyError as exc:
        logger.error("Database health check failed: %s", exc)
        items.append(HealthItem(name="Database", status="unhealthy", message="PostgreSQL unreachable"))
    return items
