import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.engine import Engine

from freelancehub.core.config import settings
from freelancehub.core.exceptions import register_exception_handlers
from freelancehub.core.logging import configure_logging
from freelancehub.db.database import create_db_and_tables
from freelancehub.db.database import engine as default_engine
from freelancehub.routers import auth, bids, chat, milestones, notifications, tasks, users
from freelancehub.schemas.common import ApiResponse
from freelancehub.services.chat import ChatCoordinator
from freelancehub.services.realtime import ConnectionHub

logger = logging.getLogger(__name__)


def create_app(engine: Optional[Engine] = None) -> FastAPI:
    configure_logging(settings.log_level)
    engine = engine or default_engine
    hub = ConnectionHub()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        create_db_and_tables(engine)
        hub.bind_loop(asyncio.get_running_loop())
        logger.info("%s started database=%s", settings.app_name, engine.url.render_as_string(hide_password=True))
        yield
        logger.info("%s stopped", settings.app_name)

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
    app.state.engine = engine
    app.state.hub = hub
    app.state.chat = ChatCoordinator(hub, engine, history_limit=settings.chat_history_limit)

    register_exception_handlers(app)

    for router in (
        auth.router,
        users.router,
        tasks.router,
        bids.router,
        milestones.router,
        notifications.router,
    ):
        app.include_router(router, prefix=settings.api_prefix)
    app.include_router(chat.router)

    @app.get(f"{settings.api_prefix}/health", response_model=ApiResponse[dict])
    def health() -> ApiResponse[dict]:
        return ApiResponse(
            message="Server is running",
            data={"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()},
        )

    return app


app = create_app()
