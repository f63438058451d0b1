"""
Shopledger - manager commissions and wallet payouts

Main FastAPI application with:
- Role-based authentication (admin/manager)
- Commission schedule management
- Manager wallets and payouts
- Periodic wallet reconciliation
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import select

from shopledger.api import api_router
from shopledger.api.errors import register_exception_handlers
from shopledger.auth.middleware import AuthMiddleware
from shopledger.config import settings
from shopledger.db import get_db_context
from shopledger.models import User, UserRole
from shopledger.scheduler import scheduler, setup_scheduler
from shopledger.services.stores import CommissionScheduleStore
from shopledger.utils.password import hash_password

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Creates the admin account if none exists
    - Seeds the default commission schedule into an empty tier table
    - Starts the background scheduler

    Shutdown:
    - Stops the scheduler
    """
    logger.info("Starting Shopledger...")

    async with get_db_context() as db:
        result = await db.execute(
            select(User).where(User.role == UserRole.ADMIN).limit(1)
        )
        admin = result.scalar_one_or_none()

        if not admin:
            logger.info("Creating admin account...")
            db.add(
                User(
                    username=settings.admin_username,
                    password_hash=hash_password(settings.admin_password),
                    role=UserRole.ADMIN,
                    display_name=settings.admin_display_name,
                    is_active=True,
                )
            )
            logger.info(f"Admin account created: {settings.admin_username}")

        if settings.seed_default_tiers:
            seeded = await CommissionScheduleStore(db).seed_defaults()
            if seeded:
                logger.info(f"Seeded {seeded} default commission tiers")

    if settings.scheduler_enabled:
        setup_scheduler()
        scheduler.start()

    logger.info("Shopledger started successfully!")

    yield

    logger.info("Shutting down Shopledger...")
    if scheduler.running:
        scheduler.shutdown(wait=False)


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    application = FastAPI(
        title="Shopledger",
        description="Manager commissions, wallets and payouts",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
    )

    application.add_middleware(AuthMiddleware)
    register_exception_handlers(application)
    application.include_router(api_router)

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shopledger.main:app",
        host="0.0.0.0",
        port=8000,
        reload=not settings.is_production,
    )
