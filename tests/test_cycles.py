import uuid
from datetime import datetime

from phutho_rate.models.audit_event import AuditEvent
from phutho_rate.models.evaluation_cycle import EvaluationCycle
from tests.helpers import TZ, auth, create_admin, create_agency, create_cycle, create_user


def cycle_payload(**overrides):
    payload = {
        "name": "Q1-2026",
        "start_date": "2026-01-01",
        "end_date": "2026-03-31",
        "scope": {"kind": "all"},
        "criteria": [
            {"id": "c1", "name": "Performance", "order": 1},
            {"id": "c2", "name": "Collaboration", "order": 2},
        ],
        "ratings": [
            {"id": "r1", "label": "Excellent", "min_score": 90, "order": 1},
            {"id": "r2", "label": "Average", "min_score": 0, "order": 2},
        ],
    }
    payload.update(overrides)
    return payload


def test_admin_creates_cycle(client, db_session):
    admin = create_admin(db_session)
    agency = create_agency(db_session)

    r = client.post(
        "/cycles",
        json=cycle_payload(scope={"kind": "agencies", "agency_ids": [str(agency.id)]}),
        headers=auth(admin),
    )
    assert r.status_code == 201, r.text

    body = r.json()
    assert body["status"] == "ACTIVE"
    assert body["scope"] == {"kind": "agencies", "agency_ids": [str(agency.id)]}
    assert [c["id"] for c in body["criteria"]] == ["c1", "c2"]
    assert body["open_state"] == "OPEN"
    assert body["scoreable"] is True
    assert body["created_by_user_id"] == str(admin.id)

    stored = db_session.get(EvaluationCycle, uuid.UUID(body["id"]))
    assert stored.target_agency_ids == [str(agency.id)]

    events = db_session.query(AuditEvent).filter(AuditEvent.action == "CYCLE_CREATED").all()
    assert len(events) == 1


def test_employee_cannot_create_cycle(client, db_session):
    agency = create_agency(db_session)
    emp = create_user(db_session, "emp@local.test", agency=agency)

    r = client.post("/cycles", json=cycle_payload(), headers=auth(emp))
    assert r.status_code == 403


def test_cycle_without_agencies_is_rejected(client, db_session):
    admin = create_admin(db_session)
    r = client.post(
        "/cycles",
        json=cycle_payload(scope={"kind": "agencies", "agency_ids": []}),
        headers=auth(admin),
    )
    assert r.status_code == 422


def test_cycle_dates_must_be_ordered(client, db_session):
    admin = create_admin(db_session)
    r = client.post(
        "/cycles",
        json=cycle_payload(start_date="2026-04-01", end_date="2026-03-31"),
        headers=auth(admin),
    )
    assert r.status_code == 422


def test_duplicate_criterion_ids_are_rejected(client, db_session):
    admin = create_admin(db_session)
    criteria = [{"id": "c1", "name": "A"}, {"id": "c1", "name": "B"}]
    r = client.post("/cycles", json=cycle_payload(criteria=criteria), headers=auth(admin))
    assert r.status_code == 422


def test_legacy_target_list_is_accepted(client, db_session):
    admin = create_admin(db_session)
    payload = cycle_payload()
    del payload["scope"]
    payload["target_agency_ids"] = ["all"]

    r = client.post("/cycles", json=payload, headers=auth(admin))
    assert r.status_code == 201, r.text
    assert r.json()["scope"] == {"kind": "all"}


def test_cycle_without_ratings_is_not_scoreable(client, db_session):
    admin = create_admin(db_session)
    r = client.post("/cycles", json=cycle_payload(ratings=[]), headers=auth(admin))
    assert r.status_code == 201
    assert r.json()["scoreable"] is False


def test_employees_only_see_cycles_of_their_agency(client, db_session):
    mine = create_agency(db_session, "Finance")
    other = create_agency(db_session, "Health")
    emp = create_user(db_session, "emp@local.test", agency=mine)

    create_cycle(db_session, name="everyone")
    create_cycle(db_session, name="finance", agencies=[mine])
    create_cycle(db_session, name="health", agencies=[other])

    r = client.get("/cycles", headers=auth(emp))
    assert r.status_code == 200
    assert sorted(c["name"] for c in r.json()) == ["everyone", "finance"]

    r = client.get("/cycles", params={"agency_id": str(other.id)}, headers=auth(emp))
    assert r.status_code == 403


def test_admin_sees_every_cycle(client, db_session):
    admin = create_admin(db_session)
    agency = create_agency(db_session)
    create_cycle(db_session, name="a", agencies=[agency])
    create_cycle(db_session, name="b")

    r = client.get("/cycles", headers=auth(admin))
    assert len(r.json()) == 2

    r = client.get("/cycles", params={"status": "CLOSED"}, headers=auth(admin))
    assert r.json() == []


def test_open_state_follows_the_clock(client, db_session, clock):
    admin = create_admin(db_session)
    cycle = create_cycle(db_session)

    clock.now = datetime(2026, 3, 31, 23, 59, tzinfo=TZ)
    assert client.get(f"/cycles/{cycle.id}", headers=auth(admin)).json()["open_state"] == "OPEN"

    clock.now = datetime(2026, 4, 1, 0, 0, tzinfo=TZ)
    body = client.get(f"/cycles/{cycle.id}", headers=auth(admin)).json()
    assert body["open_state"] == "EXPIRED"
    assert body["open_reason"]


def test_unknown_cycle_returns_404(client, db_session):
    admin = create_admin(db_session)
    r = client.get("/cycles/00000000-0000-0000-0000-000000000000", headers=auth(admin))
    assert r.status_code == 404
    assert r.json()["error_code"] == "NOT_FOUND"


def test_pause_resume_close(client, db_session):
    admin = create_admin(db_session)
    cycle = create_cycle(db_session)

    r = client.post(f"/cycles/{cycle.id}/pause", headers=auth(admin))
    assert r.status_code == 200
    assert r.json()["status"] == "PAUSED"
    assert r.json()["open_state"] == "PAUSED"

    # already paused
    r = client.post(f"/cycles/{cycle.id}/pause", headers=auth(admin))
    assert r.status_code == 200

    r = client.post(f"/cycles/{cycle.id}/activate", headers=auth(admin))
    assert r.json()["status"] == "ACTIVE"

    r = client.post(f"/cycles/{cycle.id}/close", headers=auth(admin))
    assert r.json()["open_state"] == "CLOSED"

    r = client.post(f"/cycles/{cycle.id}/activate", headers=auth(admin))
    assert r.status_code == 409

    actions = [e.action for e in db_session.query(AuditEvent).order_by(AuditEvent.created_at).all()]
    assert actions == ["CYCLE_PAUSED", "CYCLE_ACTIVATED", "CYCLE_CLOSED"]


def test_upcoming_cycle_cannot_be_paused(client, db_session):
    admin = create_admin(db_session)
    cycle = create_cycle(db_session, status="UPCOMING")

    r = client.post(f"/cycles/{cycle.id}/pause", headers=auth(admin))
    assert r.status_code == 409


def test_update_replaces_definition(client, db_session):
    admin = create_admin(db_session)
    cycle = create_cycle(db_session)

    r = client.put(
        f"/cycles/{cycle.id}",
        json=cycle_payload(name="Q1-2026 (revised)", criteria=[{"id": "c9", "name": "Initiative"}]),
        headers=auth(admin),
    )
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "Q1-2026 (revised)"
    assert [c["id"] for c in r.json()["criteria"]] == ["c9"]


def test_closed_cycle_cannot_be_edited(client, db_session):
    admin = create_admin(db_session)
    cycle = create_cycle(db_session, status="CLOSED")

    r = client.put(f"/cycles/{cycle.id}", json=cycle_payload(), headers=auth(admin))
    assert r.status_code == 409


def test_readiness_of_configured_cycle(client, db_session):
    admin = create_admin(db_session)
    cycle = create_cycle(db_session)

    r = client.get(f"/cycles/{cycle.id}/readiness", headers=auth(admin))
    assert r.status_code == 200
    body = r.json()
    assert body["can_open"] is True
    assert body["ready"] is True
    assert body["errors"] == []


def test_readiness_reports_missing_configuration(client, db_session):
    admin = create_admin(db_session)
    cycle = create_cycle(db_session, criteria=[], ratings=[])

    body = client.get(f"/cycles/{cycle.id}/readiness", headers=auth(admin)).json()
    assert body["can_open"] is False
    assert body["checks"]["has_criteria"] is False
    assert body["checks"]["has_ratings"] is False
    assert len(body["errors"]) == 2


def test_agency_ids_are_stored_in_canonical_form(client, db_session):
    admin = create_admin(db_session)
    agency = create_agency(db_session)
    emp = create_user(db_session, "emp@local.test", agency=agency)

    r = client.post(
        "/cycles",
        json=cycle_payload(scope={"kind": "agencies", "agency_ids": [str(agency.id).upper()]}),
        headers=auth(admin),
    )
    assert r.status_code == 201, r.text
    assert r.json()["scope"]["agency_ids"] == [str(agency.id)]

    visible = client.get("/cycles", headers=auth(emp)).json()
    assert [c["id"] for c in visible] == [r.json()["id"]]


def test_malformed_agency_id_is_rejected(client, db_session):
    admin = create_admin(db_session)
    r = client.post(
        "/cycles",
        json=cycle_payload(scope={"kind": "agencies", "agency_ids": ["no-such-agency"]}),
        headers=auth(admin),
    )
    assert r.status_code == 422


def test_unknown_agency_is_rejected(client, db_session):
    admin = create_admin(db_session)
    agency = create_agency(db_session)
    ghost = str(uuid.uuid4())

    r = client.post(
        "/cycles",
        json=cycle_payload(scope={"kind": "agencies", "agency_ids": [str(agency.id), ghost]}),
        headers=auth(admin),
    )
    assert r.status_code == 422
    assert r.json()["error_code"] == "INVALID_CYCLE"
    assert r.json()["details"] == {"agency_ids": [ghost]}
    assert db_session.query(EvaluationCycle).count() == 0


def test_update_cannot_target_unknown_agency(client, db_session):
    admin = create_admin(db_session)
    cycle = create_cycle(db_session)

    r = client.put(
        f"/cycles/{cycle.id}",
        json=cycle_payload(scope={"kind": "agencies", "agency_ids": [str(uuid.uuid4())]}),
        headers=auth(admin),
    )
    assert r.status_code == 422
    assert r.json()["error_code"] == "INVALID_CYCLE"
