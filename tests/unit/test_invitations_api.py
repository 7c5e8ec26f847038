from datetime import datetime, timedelta, UTC

from portal.db import models


def _invite(client, headers, unit=None, **overrides):
    payload = {"email": "new.tenant@example.com", "tenant_name": "Nina New"}
    if unit is not None:
        payload["unit_id"] = str(unit.id)
    payload.update(overrides)
    return client.post("/admin/invitations", json=payload, headers=headers)


def test_create_invitation_sends_email(client, db_session, admin_headers, factory):
    unit = factory.unit("201", status="VACANT")
    r = _invite(client, admin_headers, unit)
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["token"]
    assert body["role_in_unit"] == "PRIMARY"

    log = db_session.query(models.EmailNotificationLog).one()
    assert log.event_type == "invitation"
    assert log.email_address == "new.tenant@example.com"
    assert log.user_id is None

    again = _invite(client, admin_headers, unit)
    assert again.json()["detail"]["code"] == "PENDING_INVITATION"


def test_create_invitation_for_existing_user(client, admin_headers, tenant):
    r = _invite(client, admin_headers, email="tenant@example.com")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "USER_EXISTS"


def test_unit_role_rules(client, admin_headers, factory, tenant):
    r = _invite(client, admin_headers, tenant.unit)
    assert r.json()["detail"]["code"] == "PRIMARY_EXISTS"

    empty = factory.unit("202", status="VACANT")
    r = _invite(client, admin_headers, empty, role_in_unit="OCCUPANT")
    assert r.json()["detail"]["code"] == "NO_PRIMARY"

    r = _invite(client, admin_headers, tenant.unit, role_in_unit="OCCUPANT")
    assert r.status_code == 201


def test_public_lookup_and_accept(client, db_session, admin_headers, factory):
    unit = factory.unit("201", status="VACANT")
    token = _invite(client, admin_headers, unit).json()["token"]

    r = client.get(f"/invitations/{token}")
    assert r.status_code == 200
    assert r.json()["unit_label"] == "201"
    assert r.json()["building_name"] == "Maple Court"

    r = client.post(f"/invitations/{token}/accept", json={"name": "Nina N."})
    assert r.status_code == 200, r.text
    user = r.json()
    assert user["email"] == "new.tenant@example.com"
    assert user["display_name"] == "Nina N."
    assert user["role"] == "TENANT"

    db_session.expire_all()
    tenancy = db_session.query(models.Tenancy).filter_by(unit_id=unit.id).one()
    assert tenancy.is_active is True
    assert db_session.get(models.Unit, unit.id).status == "OCCUPIED"
    items = db_session.query(models.ChecklistItem).filter_by(tenancy_id=tenancy.id).all()
    assert len(items) == 5
    assert {i.checklist_type for i in items} == {"MOVE_IN"}

    again = client.post(f"/invitations/{token}/accept")
    assert again.json()["detail"]["code"] == "ALREADY_ACCEPTED"


def test_invalid_and_expired_tokens(client, db_session, admin_headers):
    r = client.get("/invitations/not-a-token")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "INVALID_TOKEN"

    token = _invite(client, admin_headers).json()["token"]
    invitation = db_session.query(models.Invitation).filter_by(token=token).one()
    invitation.expires_at = datetime.now(UTC) - timedelta(hours=1)
    db_session.commit()

    r = client.post(f"/invitations/{token}/accept")
    assert r.status_code == 400
    assert r.json()["detail"]["code"] == "EXPIRED"


def test_expired_invitation_does_not_block_new_one(client, db_session, admin_headers):
    token = _invite(client, admin_headers).json()["token"]
    invitation = db_session.query(models.Invitation).filter_by(token=token).one()
    invitation.expires_at = datetime.now(UTC) - timedelta(days=1)
    db_session.commit()

    assert _invite(client, admin_headers).status_code == 201


def test_resend_and_revoke(client, db_session, admin_headers, email_service):
    invitation = _invite(client, admin_headers).json()

    r = client.post(f"/admin/invitations/{invitation['id']}/resend", headers=admin_headers)
    assert r.status_code == 200
    assert email_service.send_email.await_count == 2

    r = client.delete(f"/admin/invitations/{invitation['id']}", headers=admin_headers)
    assert r.status_code == 204
    assert client.get("/admin/invitations", headers=admin_headers).json() == []

    r = client.delete(f"/admin/invitations/{invitation['id']}", headers=admin_headers)
    assert r.status_code == 404


def test_cannot_revoke_accepted_invitation(client, admin_headers):
    invitation = _invite(client, admin_headers).json()
    client.post(f"/invitations/{invitation['token']}/accept")

    r = client.delete(f"/admin/invitations/{invitation['id']}", headers=admin_headers)
    assert r.json()["detail"]["code"] == "ALREADY_ACCEPTED"
