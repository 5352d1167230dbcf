from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dashcache.routes.campaigns import router as campaigns_router
from dashcache.routes.clients import router as clients_router
from dashcache.routes.demo import router as demo_router
from dashcache.routes.snapshot import router as snapshot_router
from dashcache.routes.tasks import router as tasks_router
from dashcache.routes.team import router as team_router
from dashcache.services.config import get_settings
from dashcache.services.database import init_db

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    await init_db()
    logger.info("Database ready at %s", get_settings().resolved_database_path)
    yield


app = FastAPI(title="Dashboard Data API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url, "http://127.0.0.1:5173", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(snapshot_router)
app.include_router(clients_router)
app.include_router(campaigns_router)
app.include_router(tasks_router)
app.include_router(team_router)
app.include_router(demo_router)


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "database": str(get_settings().resolved_database_path)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("dashcache.main:app", host="127.0.0.1", port=settings.api_port)
