from contextlib import asynccontextmanager

from fastapi import FastAPI

from haddaf.config import settings
from haddaf.db import dispose_engine
from haddaf.goals.notifications_router import router as notifications_router
from haddaf.goals.router import metrics_router, register_error_handlers, router as goals_router
from haddaf.logging_config import configure_logging

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await dispose_engine()


app = FastAPI(title="Haddaf Goals", version="0.1.0", lifespan=lifespan)
app.include_router(metrics_router)
app.include_router(goals_router)
app.include_router(notifications_router)
register_error_handlers(app)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
        "goals": {
            "board": "/goals/{owner_id}",
            "set": "/goals/{owner_id}",
            "edit": "/goals/{owner_id}/{goal_id}",
            "observations": "/goals/{owner_id}/observations",
        },
        "notifications": "/notifications/{owner_id}",
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
