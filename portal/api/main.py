"""
FastAPI app assembly: logging, middleware and router wiring.
"""
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)

from portal.api.me import router as me_router
from portal.api.units import router as units_router
from portal.api.tenants import router as tenants_router
from portal.api.invoices import router as invoices_router, tenant_router as tenant_invoices_router
from portal.api.etransfer import router as etransfer_router
from portal.api.webhooks import router as webhooks_router
from portal.api.cron import router as cron_router
from portal.api.service_requests import router as service_requests_router, tenant_router as tenant_service_requests_router
from portal.api.checklist import router as checklist_router, tenant_router as tenant_checklist_router
from portal.api.insurance import router as insurance_router, tenant_router as tenant_insurance_router
from portal.api.calendar import router as calendar_router
from portal.api.dashboard import router as dashboard_router
from portal.api.property import router as property_router
from portal.api.invitations import router as invitations_router, public_router as public_invitations_router
from portal.api.audits import router as audits_router
from portal.api.notifications import router as notifications_router

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="Tenant Portal Service",
    description="API for property management: units, tenants, invoices, e-Transfer reconciliation and tenant self-service.",
    version="1.0.0",
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False

DEFAULT_ORIGINS = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8000",
]


def _cors_origins():
    raw = os.getenv("CORS_ORIGINS", "")
    configured = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return configured or DEFAULT_ORIGINS


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(me_router)
app.include_router(units_router)
app.include_router(tenants_router)
app.include_router(invoices_router)
app.include_router(tenant_invoices_router)
app.include_router(etransfer_router)
app.include_router(webhooks_router)
app.include_router(cron_router)
app.include_router(service_requests_router)
app.include_router(tenant_service_requests_router)
app.include_router(checklist_router)
app.include_router(tenant_checklist_router)
app.include_router(insurance_router)
app.include_router(tenant_insurance_router)
app.include_router(calendar_router)
app.include_router(dashboard_router)
app.include_router(property_router)
app.include_router(invitations_router)
app.include_router(public_invitations_router)
app.include_router(audits_router)
app.include_router(notifications_router)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "tenant-portal"}
