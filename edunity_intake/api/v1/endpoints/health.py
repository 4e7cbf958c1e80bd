from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from edunity_intake.api.deps import get_db

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db)) -> dict:
    """Liveness check that also verifies the database connection."""
    await db.execute(text("SELECT 1"))
    return {"status": "ok"}
