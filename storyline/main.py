import logging

from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storyline.dependencies import get_current_user
from storyline.logging_config import configure_logging
from storyline.metrics.router import MetricsRouter
from storyline.routes import router as api_router

app = FastAPI(
    title="Storyline API",
    description="An API for planning novels and generating their chapters in order with AI assistance",
    version="1.0.0",
    on_startup=[configure_logging],
)
utils_router = MetricsRouter()
logger = logging.getLogger(__name__)

app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("Initializing metrics collection")


@app.get("/", tags=["public"])
async def root():
    return {
        "message": "Welcome to Storyline API",
        "version": "1.0.0",
        "docs_url": "/docs",
        "redoc_url": "/redoc",
    }


@utils_router.get("/health", tags=["public"])
async def health_check():
    return {"status": "healthy", "api": "Storyline API", "version": "1.0.0"}


app.include_router(api_router, prefix="/storyline/api/v1", dependencies=[Depends(get_current_user)])
app.include_router(utils_router, prefix="/storyline/utils")
