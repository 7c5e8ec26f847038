"""
Calendar aggregation.

Lease milestones, rent due dates and insurance expiries are derived on the fly
from tenancies and invoices; only admin-created events are stored.
"""

import uuid
from datetime import date, datetime, timedelta, time, UTC
from typing import Optional, List, Iterable

from sqlalchemy import or_
from sqlalchemy.orm import Session

from portal.db import models, schemas
from portal.db.repositories import units as unit_repo
from portal.errors import not_found
from portal.services.notification_service import format_cents
from portal.utils.dates import ensure_utc, today_utc
from portal.utils.statuses import UNPAID_INVOICE_STATUSES, INVOICE_OVERDUE

RENEWAL_NOTICE_DAYS = 60
CUSTOM_PREFIX = "custom-"

CANADIAN_HOLIDAYS = {
    "New Year's Day": ["2024-01-01", "2025-01-01", "2026-01-01"],
    "Family Day": ["2024-02-19", "2025-02-17", "2026-02-16"],
    "Good Friday": ["2024-03-29", "2025-04-18", "2026-04-03"],
    "Victoria Day": ["2024-05-20", "2025-05-19", "2026-05-18"],
    "Canada Day": ["2024-07-01", "2025-07-01", "2026-07-01"],
    "Civic Holiday": ["2024-08-05", "2025-08-04", "2026-08-03"],
    "Labour Day": ["2024-09-02", "2025-09-01", "2026-09-07"],
    "Thanksgiving": ["2024-10-14", "2025-10-13", "2026-10-12"],
    "Remembrance Day": ["2024-11-11", "2025-11-11", "2026-11-11"],
    "Christmas Day": ["2024-12-25", "2025-12-25", "2026-12-25"],
    "Boxing Day": ["2024-12-26", "2025-12-26", "2026-12-26"],
}


def default_range(today: Optional[date] = None) -> tuple:
    today = today or today_utc()
    return date(today.year - 1, 1, 1), date(today.year + 1, 12, 31)


def _day(value: Optional[datetime]) -> Optional[date]:
    value = ensure_utc(value)
    return value.date() if value is not None else None


def _location(unit: models.Unit) -> str:
    return f"{unit.building_name} - {unit.unit_label}" if unit.building_name else unit.unit_label


def holiday_events(start: date, end: date) -> List[schemas.CalendarEventOut]:
    events = []
    for name, days in CANADIAN_HOLIDAYS.items():
        for raw in days:
            day = date.fromisoformat(raw)
            if start <= day <= end:
                events.append(schemas.CalendarEventOut(
                    id=f"holiday-{name.lower().replace(' ', '-')}-{raw}",
                    title=name,
                    start=day,
                    category="holiday",
                    description="Canadian Public Holiday. Building services may be limited.",
                ))
    return events


def tenancy_events(
    tenancy: models.Tenancy, start: date, end: date, *, today: date, insurance: Optional[models.InsuranceRecord] = None,
) -> List[schemas.CalendarEventOut]:
    unit = tenancy.unit
    where = _location(unit)
    name = tenancy.user.display_name or tenancy.user.email if tenancy.user else None
    common = dict(location=where, unit_id=unit.id, unit_label=unit.unit_label, building_name=unit.building_name, tenant_name=name)
    events = []

    move_in = _day(tenancy.start_date)
    if move_in and start <= move_in <= end:
        events.append(schemas.CalendarEventOut(
            id=f"milestone-move-in-{tenancy.id}", title=f"Move-In: {where}", start=move_in, category="move",
            description=f"{name} moves into {where}", **common,
        ))

    lease_end = _day(tenancy.end_date)
    if lease_end:
        if start <= lease_end <= end:
            events.append(schemas.CalendarEventOut(
                id=f"milestone-lease-end-{tenancy.id}", title=f"Lease End: {where}", start=lease_end, category="milestone",
                description=f"Lease ends for {name} at {where}. Discuss renewal or process move-out.", **common,
            ))
        notice = lease_end - timedelta(days=RENEWAL_NOTICE_DAYS)
        if start <= notice <= end and notice > today:
            events.append(schemas.CalendarEventOut(
                id=f"compliance-notice-{tenancy.id}", title=f"Renewal Due: {where}", start=notice, category="compliance",
                description=f"{RENEWAL_NOTICE_DAYS} days until lease end for {name}. Contact tenant about renewal.", **common,
            ))

    move_out = _day(tenancy.move_out_date)
    if move_out and start <= move_out <= end:
        events.append(schemas.CalendarEventOut(
            id=f"move-out-{tenancy.id}", title=f"Move-Out: {where}", start=move_out, category="move",
            description=f"Scheduled move-out for {name} from {where}. Coordinate inspection and key return.", **common,
        ))

    expiry = _day(insurance.expires_at) if insurance is not None else None
    if expiry and start <= expiry <= end:
        events.append(schemas.CalendarEventOut(
            id=f"insurance-expiry-{tenancy.user_id}", title=f"Insurance Expiry: {where}", start=expiry, category="compliance",
            description=f"Renter's insurance expires for {name} at {where}.", **common,
        ))
    return events


def invoice_events(invoices: Iterable[models.Invoice]) -> List[schemas.CalendarEventOut]:
    events = []
    for invoice in invoices:
        unit = invoice.unit
        where = _location(unit)
        overdue = invoice.status == INVOICE_OVERDUE
        events.append(schemas.CalendarEventOut(
            id=f"rent-due-{invoice.id}",
            title=f"OVERDUE: {where}" if overdue else f"Rent Due: {where}",
            start=_day(invoice.due_date),
            category="logistics",
            description=f"{invoice.period_month} rent {'is overdue' if overdue else 'is due'} for {where}. Amount: {format_cents(invoice.amount_cents)}",
            location=where,
            unit_id=unit.id,
            unit_label=unit.unit_label,
            building_name=unit.building_name,
        ))
    return events


def custom_event_out(event: models.CalendarEvent, unit: Optional[models.Unit] = None) -> schemas.CalendarEventOut:
    return schemas.CalendarEventOut(
        id=f"{CUSTOM_PREFIX}{event.id}",
        title=event.title,
        start=_day(event.event_date),
        end=_day(event.end_date),
        all_day=event.all_day,
        category=event.category,
        description=event.description,
        location=_location(unit) if unit is not None else event.building_name,
        unit_id=event.unit_id,
        unit_label=unit.unit_label if unit is not None else None,
        building_name=event.building_name or (unit.building_name if unit is not None else None),
        is_custom=True,
        is_visible_to_tenant=event.is_visible_to_tenant,
    )


def _range_bounds(start: date, end: date):
    return datetime.combine(start, time(0, 0, tzinfo=UTC)), datetime.combine(end + timedelta(days=1), time(0, 0, tzinfo=UTC))


def _invoice_query(db: Session, start: date, end: date):
    lower, upper = _range_bounds(start, end)
    return (
        db.query(models.Invoice)
        .join(models.Unit, models.Invoice.unit_id == models.Unit.id)
        .filter(
            models.Invoice.status.in_(UNPAID_INVOICE_STATUSES),
            models.Invoice.due_date >= lower,
            models.Invoice.due_date < upper,
        )
    )


def _custom_query(db: Session, start: date, end: date):
    lower, upper = _range_bounds(start, end)
    return db.query(models.CalendarEvent).filter(
        models.CalendarEvent.event_date >= lower,
        models.CalendarEvent.event_date < upper,
    )


def _sorted(events: List[schemas.CalendarEventOut]) -> List[schemas.CalendarEventOut]:
    return sorted(events, key=lambda e: (e.start, e.id))


def build_admin_calendar(
    db: Session,
    start: Optional[date] = None,
    end: Optional[date] = None,
    building_name: Optional[str] = None,
    unit_id: Optional[uuid.UUID] = None,
) -> List[schemas.CalendarEventOut]:
    default_start, default_end = default_range()
    start = start or default_start
    end = end or default_end
    today = today_utc()
    events: List[schemas.CalendarEventOut] = []

    tenancies = db.query(models.Tenancy).join(models.Unit).filter(models.Tenancy.is_active.is_(True))
    invoices = _invoice_query(db, start, end)
    custom = _custom_query(db, start, end)
    if building_name:
        tenancies = tenancies.filter(models.Unit.building_name == building_name)
        invoices = invoices.filter(models.Unit.building_name == building_name)
        custom = custom.filter(models.CalendarEvent.building_name == building_name)
    if unit_id:
        tenancies = tenancies.filter(models.Tenancy.unit_id == unit_id)
        invoices = invoices.filter(models.Invoice.unit_id == unit_id)
        custom = custom.filter(models.CalendarEvent.unit_id == unit_id)

    for tenancy in tenancies.all():
        events.extend(tenancy_events(tenancy, start, end, today=today, insurance=tenancy.user.insurance if tenancy.user else None))
    events.extend(invoice_events(invoices.all()))
    events.extend(holiday_events(start, end))
    for event in custom.all():
        unit = unit_repo.get_unit(db, event.unit_id) if event.unit_id else None
        events.append(custom_event_out(event, unit))
    return _sorted(events)


def build_tenant_calendar(
    db: Session, tenancy: Optional[models.Tenancy], start: Optional[date] = None, end: Optional[date] = None,
) -> List[schemas.CalendarEventOut]:
    default_start, default_end = default_range()
    start = start or default_start
    end = end or default_end
    events = holiday_events(start, end)
    if tenancy is None:
        return _sorted(events)

    unit = tenancy.unit
    events.extend(tenancy_events(tenancy, start, end, today=today_utc(), insurance=tenancy.user.insurance))
    events.extend(invoice_events(_invoice_query(db, start, end).filter(models.Invoice.unit_id == unit.id).all()))

    scope = [models.CalendarEvent.unit_id == unit.id]
    if unit.building_name:
        scope.append(models.CalendarEvent.building_name == unit.building_name)
    custom = (
        _custom_query(db, start, end)
        .filter(models.CalendarEvent.is_visible_to_tenant.is_(True), or_(*scope))
        .all()
    )
    events.extend(custom_event_out(event, unit if event.unit_id == unit.id else None) for event in custom)
    return _sorted(events)


def create_event(db: Session, payload: schemas.CalendarEventCreate, admin: models.User) -> schemas.CalendarEventOut:
    unit = None
    if payload.unit_id:
        unit = unit_repo.get_unit(db, payload.unit_id)
        if unit is None:
            raise not_found("Unit not found")
    event = models.CalendarEvent(
        title=payload.title,
        description=payload.description,
        event_date=datetime.combine(payload.event_date, time(0, 0, tzinfo=UTC)),
        end_date=datetime.combine(payload.end_date, time(0, 0, tzinfo=UTC)) if payload.end_date else None,
        all_day=payload.all_day,
        category=payload.category.value,
        building_name=payload.building_name or (unit.building_name if unit is not None else None),
        unit_id=payload.unit_id,
        is_visible_to_tenant=payload.is_visible_to_tenant,
        created_by_id=admin.id,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return custom_event_out(event, unit)


def delete_event(db: Session, event_id: str) -> None:
    raw = event_id[len(CUSTOM_PREFIX):] if event_id.startswith(CUSTOM_PREFIX) else event_id
    try:
        key = uuid.UUID(raw)
    except ValueError:
        raise not_found("Event not found")
    event = db.query(models.CalendarEvent).filter(models.CalendarEvent.id == key).first()
    if event is None:
        raise not_found("Event not found")
    db.delete(event)
    db.commit()
