# main.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.core.logging_config import setup_logging
from storefront.core.db import init_models
from storefront.routers import router as api_router
from storefront.services.notification_service import close_dispatcher

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Storefront API",
    description="FastAPI backend for the storefront: catalog, discounts, promo codes and orders",
    version="0.1.0"
)
# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # adjust for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health check endpoint
@app.get("/", tags=["Health"])
async def health_check():
    return {"status": "ok", "message": "Backend is running"}

# Register routers
app.include_router(api_router)


@app.on_event("startup")
async def on_startup():
    await init_models()
    logger.info("Storefront API started")


@app.on_event("shutdown")
async def on_shutdown():
    await close_dispatcher()
    logger.info("Storefront API stopped")
