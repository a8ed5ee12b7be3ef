"""
Solar Screening Engine — FastAPI Application Entry Point

POST /v1/tenants/{tenant_id}/screening/evaluate  → synchronous screening
     /v1/tenants/{tenant_id}/screening/...       → rules, templates, versions
GET  /v1/screening/health                        → health check
GET  /docs                                       → OpenAPI / Swagger UI
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from app.api.admin_endpoint import router as admin_router
from app.api.screening_endpoint import health_router
from app.api.screening_endpoint import router as screening_router
from app.api.versions_endpoint import router as versions_router
from app.core.config import get_settings

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.ConsoleRenderer() if get_settings().app_env == "development"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(get_settings().log_level),
)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("screening_engine_starting", engine_version=get_settings().engine_version)
    yield
    logger.info("screening_engine_shutting_down")


app = FastAPI(
    title="Solar Screening Engine",
    description="Project screening and lead scoring for multi-tenant solar sales",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (admin dashboard + CRM) ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_methods=["POST", "GET", "PUT", "DELETE"],
    allow_headers=["*"],
)

# ── Prometheus metrics ──
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── Routes ──
app.include_router(screening_router)
app.include_router(admin_router)
app.include_router(versions_router)
app.include_router(health_router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": get_settings().app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "evaluate": "POST /v1/tenants/{tenant_id}/screening/evaluate",
    }
