import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "eor-quotes.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from app.routers import categorize, currency, local_office, provider_prices, reconciliation

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"EOR quote engine started (threshold={settings.reconciliation_threshold}, "
        f"llm={'on' if settings.reconciliation_use_llm else 'off'} by default)"
    )

    yield

    # Shutdown
    from app.services.cache_service import cache_service
    from app.services.currency_converter import currency_converter

    await currency_converter.close()
    await cache_service.close()
    logger.info("Rate provider clients and cache closed")


app = FastAPI(
    title="EOR Quote Engine",
    description="Provider price normalization and reconciliation",
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

app.include_router(reconciliation.router, prefix="/api", tags=["reconciliation"])
app.include_router(provider_prices.router, prefix="/api", tags=["provider-prices"])
app.include_router(local_office.router, prefix="/api", tags=["local-office"])
app.include_router(currency.router, prefix="/api", tags=["currency"])
app.include_router(categorize.router, prefix="/api", tags=["categorize"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "eor-quote-engine"}
