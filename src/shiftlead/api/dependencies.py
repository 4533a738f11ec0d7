"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from shiftlead.config import Settings, get_settings
from shiftlead.database import init_db
from shiftlead.services.sync_service import ToastServices


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_app_settings() -> Settings:
    return get_settings()


def get_toast_services(request: Request) -> ToastServices:
    """Point-of-sale collaborators created at startup."""
    return request.app.state.toast


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Toast = Annotated[ToastServices, Depends(get_toast_services)]
