import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from safewalk.config import settings
from safewalk.database import init_db

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(
    title="SafeWalk",
    description="Walking route safety scores and risk forecasts",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from safewalk.routers import forecast, routes, signals, weather  # noqa: E402

app.include_router(routes.router, prefix="/api/v1")
app.include_router(forecast.router, prefix="/api/v1")
app.include_router(signals.router, prefix="/api/v1")
app.include_router(weather.router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok"}
