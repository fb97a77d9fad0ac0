# photobooth/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from concurrent.futures import ThreadPoolExecutor
import logging
import os

from photobooth.config.settings import settings
from photobooth.delivery.api.photostrip import router
from photobooth.domain.export import ExportStage
from photobooth.domain.layouts import LAYOUT_CATALOG
from photobooth.domain.sessions import SessionStore

logging.getLogger("PIL").setLevel(logging.WARNING)
logger = logging.getLogger("uvicorn.error")

@asynccontextmanager
async def lifespan(app: FastAPI):
    max_workers = min(4, os.cpu_count() or 1)  # Conservative limit
    app.state.executor = ThreadPoolExecutor(max_workers=max_workers)
    app.state.sessions = SessionStore(executor=app.state.executor)
    app.state.export_stage = ExportStage()
    logger.info(f"Service '{settings.PROJECT_NAME}' dimulai (mode: {settings.ENVIRONMENT}).")
    logger.info(f"Shared ThreadPoolExecutor dibuat dengan {max_workers} workers; {len(LAYOUT_CATALOG)} layout tersedia.")
    yield
    logger.info("Menutup sesi dan ThreadPoolExecutor...")
    app.state.sessions.close()
    app.state.executor.shutdown(wait=True)
    logger.info("Service berhenti.")

app = FastAPI(
    title="Photobooth Strip Service",
    description="Compose photobooth strips: layouts, photo slots, backgrounds, stickers and high-resolution export",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Export-Url", "X-Export-Path"],
)

app.include_router(router, prefix=settings.API_V1_STR)

@app.get("/")
async def root():
    return {"message": "Photobooth Strip Service", "version": "1.0.0", "status": "ok"}

@app.get("/health")
async def health_check():
    return {"status": "ok", "service": settings.PROJECT_NAME, "layouts": len(LAYOUT_CATALOG)}
