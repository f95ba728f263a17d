import os

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from menubot.config import settings
from menubot.database import get_db
from menubot.logging_config import setup_logging
from menubot.routers import admin, webhook
from menubot.services.config_cache import ConfigCache
from menubot.services.dispatcher import Dispatcher
from menubot.services.evolution_service import EvolutionClient

setup_logging(settings.log_level, json_output=not settings.debug)

app = FastAPI(
    title="Menubot API",
    description="WhatsApp menu chatbot engine for IPTV resellers",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.config_cache = ConfigCache(settings.config_cache_ttl_seconds)
app.state.dispatcher = Dispatcher(EvolutionClient())

app.include_router(webhook.router)
app.include_router(admin.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"status": "ok"}
