from portal.db import models


def test_create_update_delete_unit(client, db_session, admin_headers):
    r = client.post(
        "/admin/units",
        json={"building_name": "Maple Court", "unit_label": "201", "rent_amount_cents": 180000, "rent_due_day": 1},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    unit = r.json()
    assert unit["status"] == "VACANT"

    dup = client.post("/admin/units", json={"building_name": "Maple Court", "unit_label": "201"}, headers=admin_headers)
    assert dup.status_code == 400
    assert dup.json()["detail"]["code"] == "DUPLICATE"

    r = client.put(f"/admin/units/{unit['id']}", json={"rent_amount_cents": 185000}, headers=admin_headers)
    assert r.json()["rent_amount_cents"] == 185000

    assert client.get("/admin/units/buildings", headers=admin_headers).json() == ["Maple Court"]

    r = client.delete(f"/admin/units/{unit['id']}", headers=admin_headers)
    assert r.status_code == 204
    assert db_session.query(models.Unit).count() == 0
    assert db_session.query(models.AuditLog).filter_by(action_type="unit_delete").count() == 1


def test_unit_due_day_validation(client, admin_headers):
    r = client.post("/admin/units", json={"unit_label": "9", "rent_due_day": 32}, headers=admin_headers)
    assert r.status_code == 422


def test_cannot_delete_occupied_unit(client, admin_headers, tenant):
    r = client.delete(f"/admin/units/{tenant.unit.id}", headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "HAS_TENANCY"


def test_list_units_includes_tenant_names(client, admin_headers, tenant):
    r = client.get("/admin/units", headers=admin_headers)
    assert r.json()[0]["tenant_names"] == ["John Smith"]


def test_rent_roll(client, admin_headers, factory, tenant):
    factory.unit("102", status="VACANT", rent_cents=140000)

    r = client.get("/admin/units/rent-roll", params={"building_name": "Maple Court"}, headers=admin_headers)
    assert r.status_code == 200
    roll = r.json()
    assert roll["summary"] == {
        "total_units": 2,
        "occupied_units": 1,
        "vacant_units": 1,
        "total_monthly_rent_cents": 150000,
        "occupancy_rate": 50,
    }
    names = {row["unit_label"]: row["primary_tenant_name"] for row in roll["units"]}
    assert names == {"101": "John Smith", "102": "Vacant"}

    missing = client.get("/admin/units/rent-roll", headers=admin_headers)
    assert missing.json()["detail"]["code"] == "MISSING_BUILDING"


def test_deactivate_and_reactivate_tenant(client, db_session, admin_headers, tenant):
    r = client.put(f"/admin/tenants/{tenant.user.id}/deactivate", headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "INACTIVE"
    assert body["tenancy"] is None

    db_session.expire_all()
    assert db_session.get(models.Unit, tenant.unit.id).status == "VACANT"
    assert db_session.get(models.Tenancy, tenant.tenancy.id).is_active is False

    # deactivated tenants are locked out
    r = client.get("/me", headers=tenant.headers)
    assert r.status_code == 403
    assert r.json()["detail"]["code"] == "ACCOUNT_INACTIVE"

    again = client.put(f"/admin/tenants/{tenant.user.id}/deactivate", headers=admin_headers)
    assert again.json()["detail"]["code"] == "ALREADY_INACTIVE"

    r = client.put(f"/admin/tenants/{tenant.user.id}/reactivate", headers=admin_headers)
    assert r.json()["status"] == "ACTIVE"


def test_deactivate_keeps_unit_with_remaining_occupant(client, db_session, admin_headers, factory, tenant):
    roommate = factory.user("roommate@example.com", name="Rita Room")
    factory.tenancy(roommate, tenant.unit, role_in_unit="OCCUPANT")

    client.put(f"/admin/tenants/{tenant.user.id}/deactivate", headers=admin_headers)

    db_session.expire_all()
    assert db_session.get(models.Unit, tenant.unit.id).status == "OCCUPIED"


def test_delete_unit_after_tenant_deactivated_removes_history(client, db_session, admin_headers, factory, tenant):
    invoice = factory.invoice(tenant.tenancy, status="PAID")
    db_session.add(models.Payment(invoice_id=invoice.id, unit_id=tenant.unit.id, user_id=tenant.user.id,
                                  amount_cents=150000, method="manual"))
    db_session.add(models.ServiceRequest(unit_id=tenant.unit.id, created_by_id=tenant.user.id,
                                         title="Leaky tap", description="Kitchen tap drips"))
    db_session.commit()

    assert client.put(f"/admin/tenants/{tenant.user.id}/deactivate", headers=admin_headers).status_code == 200

    r = client.delete(f"/admin/units/{tenant.unit.id}", headers=admin_headers)
    assert r.status_code == 204, r.text

    db_session.expire_all()
    assert db_session.query(models.Unit).count() == 0
    assert db_session.query(models.Tenancy).count() == 0
    assert db_session.query(models.Invoice).count() == 0
    assert db_session.query(models.Payment).count() == 0
    assert db_session.query(models.ServiceRequest).count() == 0
    assert client.get("/admin/tenants", headers=admin_headers).status_code == 200


def test_list_and_update_tenants(client, admin_headers, tenant):
    r = client.get("/admin/tenants", headers=admin_headers)
    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == 1
    assert rows[0]["tenancy"]["unit_label"] == "101"
    assert rows[0]["insurance_status"] == "MISSING"

    r = client.put(f"/admin/tenants/{tenant.user.id}", json={"phone": "555-0100"}, headers=admin_headers)
    assert r.json()["phone"] == "555-0100"


def test_schedule_move_out(client, admin_headers, tenant):
    r = client.put(
        f"/admin/tenants/{tenant.user.id}/move-out",
        json={"move_out_date": "2025-06-30T12:00:00Z"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["tenancy"]["move_out_date"].startswith("2025-06-30T12:00:00")


def test_unknown_tenant_is_404(client, admin_headers, admin):
    r = client.put(f"/admin/tenants/{admin.id}/deactivate", headers=admin_headers)
    assert r.status_code == 404
