from datetime import date, datetime, UTC

from portal.services import calendar


def test_holiday_events_in_range():
    events = calendar.holiday_events(date(2025, 7, 1), date(2025, 9, 30))
    assert [(e.title, e.start) for e in events] == [
        ("Canada Day", date(2025, 7, 1)),
        ("Civic Holiday", date(2025, 8, 4)),
        ("Labour Day", date(2025, 9, 1)),
    ]
    assert {e.category for e in events} == {"holiday"}


def test_default_range():
    assert calendar.default_range(date(2025, 6, 15)) == (date(2024, 1, 1), date(2026, 12, 31))


def test_tenancy_milestones(db_session, tenant):
    tenant.tenancy.end_date = datetime(2025, 12, 31, tzinfo=UTC)
    tenant.tenancy.move_out_date = datetime(2025, 12, 31, tzinfo=UTC)
    db_session.commit()

    events = calendar.tenancy_events(tenant.tenancy, date(2024, 1, 1), date(2025, 12, 31), today=date(2025, 6, 1))
    by_id = {e.id.rsplit("-", 5)[0]: e for e in events}
    assert by_id["milestone-move-in"].start == date(2024, 1, 1)
    assert by_id["milestone-lease-end"].category == "milestone"
    assert by_id["compliance-notice"].start == date(2025, 11, 1)
    assert by_id["move-out"].title == "Move-Out: Maple Court - 101"
    assert all(e.tenant_name == "John Smith" for e in events)


def test_renewal_notice_skipped_once_past(db_session, tenant):
    tenant.tenancy.end_date = datetime(2025, 3, 1, tzinfo=UTC)
    db_session.commit()
    events = calendar.tenancy_events(tenant.tenancy, date(2024, 1, 1), date(2025, 12, 31), today=date(2025, 2, 1))
    assert not [e for e in events if e.category == "compliance"]


def test_admin_calendar_includes_rent_and_custom(client, admin_headers, factory, tenant):
    factory.invoice(tenant.tenancy, status="OVERDUE")
    r = client.post(
        "/admin/calendar/events",
        json={"title": "Fire alarm test", "event_date": "2025-03-10", "unit_id": str(tenant.unit.id),
              "is_visible_to_tenant": True, "category": "compliance"},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    custom = r.json()
    assert custom["id"].startswith("custom-")
    assert custom["building_name"] == "Maple Court"

    events = client.get("/admin/calendar", params={"start": "2025-03-01", "end": "2025-03-31"},
                        headers=admin_headers).json()
    titles = [e["title"] for e in events]
    assert titles == ["OVERDUE: Maple Court - 101", "Fire alarm test"]
    assert events[0]["category"] == "logistics"
    assert "$1,500.00" in events[0]["description"]


def test_event_validation(client, admin_headers):
    r = client.post("/admin/calendar/events",
                    json={"title": "Backwards", "event_date": "2025-03-10", "end_date": "2025-03-01"},
                    headers=admin_headers)
    assert r.status_code == 422


def test_delete_event(client, admin_headers):
    event = client.post("/admin/calendar/events", json={"title": "Painting", "event_date": "2025-04-02"},
                        headers=admin_headers).json()
    assert client.delete(f"/admin/calendar/events/{event['id']}", headers=admin_headers).status_code == 204
    assert client.delete(f"/admin/calendar/events/{event['id']}", headers=admin_headers).status_code == 404
    assert client.delete("/admin/calendar/events/custom-garbage", headers=admin_headers).status_code == 404


def test_tenant_calendar_visibility(client, admin_headers, factory, tenant):
    other = factory.tenant(email="other@example.com", name="Alice Wong", label="102", building="Oak Tower")
    factory.invoice(other.tenancy)
    for payload in (
        {"title": "Hallway paint", "event_date": "2025-03-05", "building_name": "Maple Court", "is_visible_to_tenant": True},
        {"title": "Owner walkthrough", "event_date": "2025-03-06", "building_name": "Maple Court"},
        {"title": "Oak elevator work", "event_date": "2025-03-07", "building_name": "Oak Tower", "is_visible_to_tenant": True},
    ):
        client.post("/admin/calendar/events", json=payload, headers=admin_headers)

    events = client.get("/tenant/calendar", params={"start": "2025-03-01", "end": "2025-03-31"},
                        headers=tenant.headers).json()
    assert [e["title"] for e in events] == ["Hallway paint"]
