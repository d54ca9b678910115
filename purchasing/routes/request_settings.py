from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from purchasing.database import get_db
from purchasing.middleware.auth import get_current_user
from purchasing.middleware.authorization import require_permission
from purchasing.middleware.store import get_request_store
from purchasing.schemas.settings import RequestSettings
from purchasing.services.request_store import RequestStore

logger = structlog.get_logger()
router = APIRouter()


@router.get("", response_model=RequestSettings)
async def get_request_settings(
    current_user: dict = Depends(get_current_user),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    return await store.get_settings(db)


@router.put("", response_model=RequestSettings)
async def save_request_settings(
    body: RequestSettings,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_permission("admin:settings")),
    store: RequestStore = Depends(get_request_store),
    db: AsyncSession = Depends(get_db),
):
    saved = await store.save_settings(db, body)
    logger.info("request_settings_updated", by=current_user["name"])
    return saved
