"""
SEOScope FastAPI Application — main entry point
Single-page SEO analysis: fetch, robots/sitemap discovery, on-page checks.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import connect_db, close_db, get_db
from .routers.search_router import router as search_router
from .routers.reports_router import router as reports_router

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
# Reduce noise from framework/network libraries
for _name in ("aiohttp.access", "aiohttp.client", "uvicorn.access", "pymongo"):
    logging.getLogger(_name).setLevel(logging.WARNING)

logger = logging.getLogger("seoscope")


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await connect_db()
    except Exception as e:
        logger.warning("MongoDB not available — using in-memory store: %s", e)

    yield

    await close_db()


app = FastAPI(
    title="SEOScope API",
    description=(
        "**SEOScope** — single-page SEO analysis\n\n"
        "Features:\n"
        "- Meta tags, Open Graph & Twitter Card inspection\n"
        "- Heading, image, content and mobile checks\n"
        "- JSON-LD / microdata detection\n"
        "- robots.txt and sitemap discovery\n"
    ),
    version="1.0.0",
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan,
)

_dev_origins = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]
_extra_origins = [o.strip() for o in settings.extra_allowed_origins.split(",") if o.strip()]

ALLOWED_ORIGINS = _extra_origins + (
    _dev_origins if settings.environment != "production" else []
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(search_router)
app.include_router(reports_router)


@app.get("/", tags=["Health"])
async def root():
    return {"service": "SEOScope API", "version": app.version, "status": "running", "docs": "/docs"}


@app.api_route("/health", methods=["GET", "HEAD"], tags=["Health"])
async def health():
    return {
        "status": "ok",
        "database": "connected" if get_db() is not None else "in-memory fallback",
        "environment": settings.environment,
    }
