from datetime import datetime, UTC

from portal.db import models


def test_tenant_dashboard(client, factory, tenant):
    factory.invoice(tenant.tenancy, period="2025-04", due=datetime(2025, 4, 1, 12, tzinfo=UTC))
    first = factory.invoice(tenant.tenancy, period="2025-03")
    factory.invoice(tenant.tenancy, period="2025-02", due=datetime(2025, 2, 1, 12, tzinfo=UTC), status="PAID")

    r = client.get("/tenant/dashboard", headers=tenant.headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["unit"]["unit_label"] == "101"
    assert body["next_invoice"]["id"] == str(first.id)
    assert body["open_invoice_count"] == 2
    assert body["open_service_requests"] == 0
    assert body["insurance_status"] == "MISSING"
    assert body["etransfer_enabled"] is True


def test_dashboard_without_tenancy(client, factory):
    factory.user("loner@example.com", name="Lee Loner")
    body = client.get("/tenant/dashboard", headers={"x-auth-request-email": "loner@example.com"}).json()
    assert body["unit"] is None
    assert body["next_invoice"] is None
    assert body["checklist_progress"] is None


def test_property_landing_lists_vacant_units(client, factory, tenant):
    factory.unit("102", status="VACANT")

    body = client.get("/property").json()
    assert body["property"]["name"] == "Maple Court"
    assert [u["unit_label"] for u in body["available_units"]] == ["102"]


def test_property_landing_empty_install(client):
    assert client.get("/property").json() == {"property": None, "available_units": []}


def test_showing_request_notifies_admins(client, db_session, admin, factory):
    unit = factory.unit("102", status="VACANT")

    r = client.post(
        "/property/showing-requests",
        json={"name": " Sam Seeker ", "email": "Sam@Example.com", "unit_id": str(unit.id),
              "message": "Evenings work best"},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["status"] == "NEW"
    assert body["email"] == "sam@example.com"
    assert body["property_id"] == str(unit.property_id)

    log = db_session.query(models.EmailNotificationLog).one()
    assert log.event_type == "showing_request"
    assert log.email_address == admin.email


def test_showing_request_unknown_unit(client, db_session):
    r = client.post(
        "/property/showing-requests",
        json={"name": "Sam", "email": "sam@example.com", "unit_id": "00000000-0000-0000-0000-000000000000"},
    )
    assert r.status_code == 404
    assert db_session.query(models.ShowingRequest).count() == 0


def test_showing_request_validation(client):
    r = client.post("/property/showing-requests", json={"name": "Sam", "email": "not-an-email"})
    assert r.status_code == 422


def test_admin_manages_showings(client, admin_headers):
    showing = client.post("/property/showing-requests", json={"name": "Sam", "email": "sam@example.com"}).json()

    r = client.put(f"/admin/showing-requests/{showing['id']}", json={"status": "CONTACTED"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["status"] == "CONTACTED"

    assert client.get("/admin/showing-requests", params={"status": "NEW"}, headers=admin_headers).json() == []
    assert len(client.get("/admin/showing-requests", headers=admin_headers).json()) == 1
