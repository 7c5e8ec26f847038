"""
Invoice endpoints for administrators and tenants.

Admin routes live under ``/admin/invoices``; tenant routes under
``/tenant/invoices`` and ``/tenant/payments`` (with printable receipts) and scope to the
caller's active tenancy.
"""
from typing import List, Optional
import uuid

from fastapi import APIRouter, Depends, status
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.db.repositories import invoices as invoice_repo
from portal.db.repositories import users as user_repo
from portal.api.deps import require_admin, require_tenant, get_tenant_tenancy
from portal.services import invoices as invoice_service
from portal.services import etransfer as etransfer_service
from portal.services.invoice_generation import generate_for_period

router = APIRouter(prefix="/admin/invoices", tags=["invoices"])
tenant_router = APIRouter(tags=["tenant-invoices"])


@router.get("", response_model=List[schemas.Invoice])
def list_invoices(
    status: Optional[str] = None,
    unit_id: Optional[uuid.UUID] = None,
    period_month: Optional[str] = None,
    building_name: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    return invoice_repo.list_invoices(
        db,
        status=status,
        unit_id=unit_id,
        period_month=period_month,
        building_name=building_name,
        skip=skip,
        limit=min(limit, 500),
    )


@router.post("", response_model=schemas.Invoice, status_code=status.HTTP_201_CREATED)
def create_invoice(payload: schemas.InvoiceCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return invoice_service.create_invoice(db, payload, admin)


@router.post("/generate", response_model=schemas.PeriodGenerationResponse)
def generate_invoices(payload: schemas.InvoiceGenerateRequest, db: Session = Depends(get_db), admin=Depends(require_admin)):
    """Create RENT invoices for every occupied unit for an explicit period."""
    return generate_for_period(db, payload.period_month)


@router.put("/{invoice_id}", response_model=schemas.Invoice)
def update_invoice(invoice_id: uuid.UUID, payload: schemas.InvoiceUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return invoice_service.update_invoice(db, invoice_id, payload, admin)


@router.put("/{invoice_id}/paid", response_model=schemas.InvoicePaidResponse)
def mark_invoice_paid(invoice_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return invoice_service.mark_paid(db, invoice_id, admin)


@router.put("/{invoice_id}/void", response_model=schemas.Invoice)
def void_invoice(invoice_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return invoice_service.void(db, invoice_id, admin)


@router.post("/{invoice_id}/reminder", response_model=schemas.ReminderResponse)
def send_invoice_reminder(invoice_id: uuid.UUID, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return invoice_service.send_reminder(db, invoice_id)


# === Tenant ===

@tenant_router.get("/tenant/invoices", response_model=List[schemas.Invoice])
def list_my_invoices(db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    tenancy = get_tenant_tenancy(db, tenant)
    return invoice_service.tenant_invoices(db, tenancy)


@tenant_router.get("/tenant/invoices/etransfer-settings", response_model=schemas.TenantEtransferSettings)
def get_etransfer_settings(db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    return etransfer_service.tenant_settings(db, user_repo.get_active_tenancy(db, tenant.id))


@tenant_router.get("/tenant/invoices/{invoice_id}", response_model=schemas.Invoice)
def get_my_invoice(invoice_id: uuid.UUID, db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    tenancy = get_tenant_tenancy(db, tenant)
    return invoice_service.tenant_invoice(db, tenancy, invoice_id)


@tenant_router.post("/tenant/invoices/{invoice_id}/etransfer-sent", response_model=schemas.Invoice)
def mark_etransfer_sent(invoice_id: uuid.UUID, db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    """Tenant reports that an Interac e-Transfer was sent for the invoice."""
    return etransfer_service.mark_sent(db, invoice_id=invoice_id, tenant=tenant)


@tenant_router.get("/tenant/payments", response_model=List[schemas.PaymentOut])
def list_my_payments(skip: int = 0, limit: int = 100, db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    return invoice_repo.list_payments_for_user(db, tenant.id, skip=skip, limit=limit)


@tenant_router.get("/tenant/payments/{payment_id}/receipt", response_class=HTMLResponse)
def payment_receipt(payment_id: uuid.UUID, db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    """Printable HTML receipt for one of the caller's payments."""
    return HTMLResponse(invoice_service.payment_receipt(db, payment_id, tenant))
