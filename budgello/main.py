import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session

from .config import Settings, settings as default_settings
from .core.errors import register_error_handlers
from .core.log import configure_logging
from .database import build_engine, init_db
from .routers import auth as auth_router
from .routers import budgets as budgets_router
from .routers import categories as categories_router
from .routers import summary as summary_router
from .routers import transactions as transactions_router
from .routers import users as users_router
from .services.credentials import CredentialStore


logger = logging.getLogger(__name__)


def bootstrap_admin(engine, config: Settings) -> None:
    if not config.admin_username or not config.admin_password:
        logger.info("ADMIN_USERNAME/ADMIN_PASSWORD not set, skipping admin bootstrap")
        return
    with Session(engine) as session:
        CredentialStore(session).bootstrap_admin(config.admin_username, config.admin_password)


def create_app(config: Optional[Settings] = None) -> FastAPI:
    config = config or default_settings
    configure_logging(config.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = build_engine(config.database_url, echo=config.sql_echo)
        app.state.engine = engine
        try:
            init_db(engine)
            bootstrap_admin(engine, config)
            logger.info("Budgello API ready, allowing origin %s", config.cors_origin)
            yield
        finally:
            engine.dispose()

    app = FastAPI(title="Budgello – Backend", version="0.1.0", lifespan=lifespan)
    app.state.settings = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
    )
    register_error_handlers(app)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(auth_router.router)
    app.include_router(users_router.router)
    app.include_router(categories_router.router)
    app.include_router(transactions_router.router)
    app.include_router(budgets_router.router)
    app.include_router(summary_router.router)

    return app


app = create_app()
