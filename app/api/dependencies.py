"""
Request-scoped collaborators: one repository per request session, and the
services built on it. Tests override get_repository.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models.database import get_db
from app.services.screening_repository import ScreeningRepository
from app.services.screening_service import ScreeningService
from app.services.template_versions import TemplateVersionManager


async def get_repository(db: AsyncSession = Depends(get_db)) -> ScreeningRepository:
    return ScreeningRepository(db)


async def get_screening_service(repo=Depends(get_repository)) -> ScreeningService:
    return ScreeningService(repo, engine_version=get_settings().engine_version)


async def get_version_manager(repo=Depends(get_repository)) -> TemplateVersionManager:
    return TemplateVersionManager(repo)
