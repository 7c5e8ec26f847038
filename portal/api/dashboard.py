"""
Tenant dashboard summary.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.db.database import get_db
from portal.db import schemas
from portal.db.repositories import invoices as invoice_repo
from portal.db.repositories import service_requests as request_repo
from portal.db.repositories import users as user_repo
from portal.api.deps import require_tenant
from portal.services.checklist import progress_for_tenancy
from portal.services.etransfer import etransfer_enabled
from portal.services.insurance import effective_status

router = APIRouter(tags=["dashboard"])


@router.get("/tenant/dashboard", response_model=schemas.TenantDashboard)
def tenant_dashboard(db: Session = Depends(get_db), tenant=Depends(require_tenant)):
    tenancy = user_repo.get_active_tenancy(db, tenant.id)
    unit = tenancy.unit if tenancy else None
    unpaid = invoice_repo.list_unpaid_for_units(db, [unit.id]) if unit else []
    return schemas.TenantDashboard(
        unit=schemas.DashboardUnit.model_validate(unit, from_attributes=True) if unit else None,
        next_invoice=schemas.Invoice.model_validate(unpaid[0]) if unpaid else None,
        open_invoice_count=len(unpaid),
        open_service_requests=request_repo.count_open_for_unit(db, unit.id) if unit else 0,
        checklist_progress=progress_for_tenancy(db, tenancy),
        insurance_status=effective_status(user_repo.get_insurance_record(db, tenant.id)),
        etransfer_enabled=etransfer_enabled(invoice_repo.get_settings(db)),
    )
