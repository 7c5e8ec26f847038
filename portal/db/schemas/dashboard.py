import uuid
from typing import Optional
from pydantic import BaseModel

from .invoices import Invoice
from .checklists import ChecklistProgress


class DashboardUnit(BaseModel):
    id: uuid.UUID
    unit_label: str
    building_name: Optional[str] = None
    rent_amount_cents: Optional[int] = None
    rent_due_day: int


class TenantDashboard(BaseModel):
    unit: Optional[DashboardUnit] = None
    next_invoice: Optional[Invoice] = None
    open_invoice_count: int = 0
    open_service_requests: int = 0
    checklist_progress: Optional[ChecklistProgress] = None
    insurance_status: str
    etransfer_enabled: bool
