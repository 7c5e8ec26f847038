import os

# Force the in-memory SQLite engine before the app imports the database module
os.environ.setdefault("PYTEST_RUNNING", "1")

from datetime import datetime, UTC
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

import portal.db.database as db_module
from portal.api.main import app
from portal.db import models
from portal.utils.feature_flags import refresh_feature_flag_cache

ADMIN_EMAIL = "admin@example.com"
CRON_SECRET = "cron-secret-value"


@pytest.fixture(scope="session", autouse=True)
def _schema():
    models.Base.metadata.create_all(bind=db_module.engine)
    yield
    models.Base.metadata.drop_all(bind=db_module.engine)


@pytest.fixture(autouse=True)
def _env(monkeypatch, tmp_path):
    """Baseline environment: header auth, known secrets, no LLM, fresh flags."""
    monkeypatch.setenv("DEV_MODE", "false")
    monkeypatch.setenv("APP_BASE_URL", "http://localhost:3000")
    monkeypatch.setenv("ADMIN_EMAILS", ADMIN_EMAIL)
    monkeypatch.setenv("CRON_SECRET", CRON_SECRET)
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    for name in (
        "PAYMENT_WEBHOOK_SECRET",
        "OPENAI_API_KEY",
        "FEATURE_ETRANSFER_ENABLED",
        "FEATURE_LLM_PARSER_ENABLED",
        "FEATURE_INVOICE_EMAILS_ENABLED",
    ):
        monkeypatch.delenv(name, raising=False)
    refresh_feature_flag_cache()
    yield
    refresh_feature_flag_cache()


@pytest.fixture(autouse=True)
def email_service():
    """Replace the provider-backed email service with a mock that always succeeds."""
    service = MagicMock()
    service.render_template.return_value = ("<p>x</p>", "x")
    service.send_email = AsyncMock(return_value={"success": True, "message_id": "msg-1"})
    with patch(
        "portal.services.transactional_email_service.get_transactional_email_service",
        return_value=service,
    ):
        yield service


@pytest.fixture
def db_session():
    session = db_module.SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        with db_module.engine.begin() as conn:
            for table in reversed(models.Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[db_module.get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(db_module.get_db, None)


class Factory:
    """Small builders for the rows most tests need."""

    def __init__(self, db):
        self.db = db
        self._property = None

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def property(self):
        if self._property is None:
            self._property = self._save(models.Property(name="Maple Court", address="1 Maple St", city="Toronto"))
        return self._property

    def user(self, email, *, name=None, role="TENANT", status="ACTIVE"):
        return self._save(models.User(email=email, display_name=name, role=role, status=status))

    def unit(self, label="101", *, rent_cents=150000, due_day=1, building="Maple Court", status="OCCUPIED"):
        return self._save(models.Unit(
            property_id=self.property().id,
            building_name=building,
            unit_label=label,
            rent_amount_cents=rent_cents,
            rent_due_day=due_day,
            status=status,
            bedrooms=2,
            bathrooms=1.0,
        ))

    def tenancy(self, user, unit, *, role_in_unit="PRIMARY", active=True):
        return self._save(models.Tenancy(
            user_id=user.id,
            unit_id=unit.id,
            start_date=datetime(2024, 1, 1, tzinfo=UTC),
            role_in_unit=role_in_unit,
            is_active=active,
        ))

    def invoice(self, tenancy, *, period="2025-03", due=None, amount_cents=150000, status="OPEN",
                invoice_type="RENT", description=None):
        return self._save(models.Invoice(
            unit_id=tenancy.unit_id,
            tenancy_id=tenancy.id,
            period_month=period,
            due_date=due or datetime(2025, 3, 1, 12, tzinfo=UTC),
            amount_cents=amount_cents,
            status=status,
            invoice_type=invoice_type,
            description=description,
        ))

    def tenant(self, email="tenant@example.com", name="John Smith", label="101", **unit_kwargs):
        unit = self.unit(label, **unit_kwargs)
        user = self.user(email, name=name)
        tenancy = self.tenancy(user, unit)
        return SimpleNamespace(user=user, unit=unit, tenancy=tenancy, headers=headers_for(email, name))


def headers_for(email, name=None):
    headers = {"x-auth-request-email": email}
    if name:
        headers["x-auth-request-user"] = name
    return headers


@pytest.fixture
def factory(db_session):
    return Factory(db_session)


@pytest.fixture
def admin(factory):
    return factory.user(ADMIN_EMAIL, name="Alex Admin", role="ADMIN")


@pytest.fixture
def admin_headers(admin):
    return headers_for(ADMIN_EMAIL, "Alex Admin")


@pytest.fixture
def tenant(factory):
    return factory.tenant()


@pytest.fixture
def cron_headers():
    return {"x-cron-secret": CRON_SECRET}


