from datetime import date, datetime

import pytest

from phutho_rate.core.exceptions import DuplicateSubmissionError
from phutho_rate.models.audit_event import AuditEvent
from phutho_rate.models.evaluation import Evaluation
from phutho_rate.services import evaluations as evaluation_service
from tests.helpers import (
    FIXED_NOW,
    TZ,
    auth,
    create_admin,
    create_agency,
    create_cycle,
    create_evaluation,
    create_user,
)

GOOD_SCORES = {"c1": 90, "c2": 80}


@pytest.fixture()
def team(db_session):
    agency = create_agency(db_session, "Finance")
    other = create_agency(db_session, "Health")
    return {
        "agency": agency,
        "other": other,
        "admin": create_admin(db_session),
        "a": create_user(db_session, "a@local.test", name="Anh", agency=agency),
        "b": create_user(db_session, "b@local.test", name="Binh", agency=agency),
        "c": create_user(db_session, "c@local.test", name="Chi", agency=agency),
        "x": create_user(db_session, "x@local.test", name="Xuan", agency=other),
    }


def submit(client, cycle, evaluator, evaluatee, scores=None, comment=""):
    return client.post(
        f"/cycles/{cycle.id}/evaluations",
        json={"evaluatee_id": str(evaluatee.id), "scores": scores or GOOD_SCORES, "comment": comment},
        headers=auth(evaluator),
    )


def test_submit_evaluation(client, db_session, team):
    cycle = create_cycle(db_session, agencies=[team["agency"]])

    r = submit(client, cycle, team["a"], team["b"], comment="  Reliable colleague  ")
    assert r.status_code == 201, r.text

    body = r.json()
    assert body["evaluator_id"] == str(team["a"].id)
    assert body["evaluatee_id"] == str(team["b"].id)
    assert body["agency_id"] == str(team["agency"].id)
    assert body["scores"] == {"c1": 90.0, "c2": 80.0}
    assert body["comment"] == "Reliable colleague"

    events = db_session.query(AuditEvent).filter(AuditEvent.action == "EVALUATION_SUBMITTED").all()
    assert len(events) == 1
    assert events[0].actor_user_id == team["a"].id


def test_second_submission_is_rejected(client, db_session, team):
    cycle = create_cycle(db_session, agencies=[team["agency"]])

    assert submit(client, cycle, team["a"], team["b"]).status_code == 201
    r = submit(client, cycle, team["a"], team["b"], scores={"c1": 10, "c2": 10})

    assert r.status_code == 409
    assert r.json()["error_code"] == "DUPLICATE_SUBMISSION"
    stored = db_session.query(Evaluation).all()
    assert len(stored) == 1
    assert stored[0].scores == {"c1": 90.0, "c2": 80.0}


def test_same_peer_can_be_evaluated_in_another_cycle(client, db_session, team):
    first = create_cycle(db_session, name="Q1")
    second = create_cycle(db_session, name="Q1 bis")

    assert submit(client, first, team["a"], team["b"]).status_code == 201
    assert submit(client, second, team["a"], team["b"]).status_code == 201


def test_constraint_catches_submission_that_skipped_the_precheck(db_session, team, monkeypatch):
    cycle = create_cycle(db_session)
    create_evaluation(db_session, cycle, team["a"], team["b"], GOOD_SCORES)
    monkeypatch.setattr(evaluation_service, "find_existing", lambda *args: None)

    with pytest.raises(DuplicateSubmissionError):
        evaluation_service.submit_evaluation(
            db_session,
            evaluator=team["a"],
            cycle=cycle,
            evaluatee_id=team["b"].id,
            scores=GOOD_SCORES,
            comment="",
            now=FIXED_NOW,
        )

    # the savepoint rollback leaves the session usable
    assert db_session.query(Evaluation).count() == 1


@pytest.mark.parametrize(
    "status, state",
    [("PAUSED", "PAUSED"), ("CLOSED", "CLOSED"), ("UPCOMING", "UPCOMING")],
)
def test_cycle_not_open_by_status(client, db_session, team, status, state):
    cycle = create_cycle(db_session, status=status)

    r = submit(client, cycle, team["a"], team["b"])
    assert r.status_code == 409
    body = r.json()
    assert body["error_code"] == "CYCLE_NOT_OPEN"
    assert body["details"] == {"state": state}
    assert body["detail"]
    assert db_session.query(Evaluation).count() == 0


def test_cycle_not_started_yet(client, db_session, team):
    cycle = create_cycle(db_session, start_date=date(2026, 3, 1))
    r = submit(client, cycle, team["a"], team["b"])
    assert r.json()["details"] == {"state": "UPCOMING"}


def test_last_day_is_still_open(client, db_session, team, clock):
    cycle = create_cycle(db_session, end_date=date(2026, 3, 31))

    clock.now = datetime(2026, 3, 31, 23, 59, 59, tzinfo=TZ)
    assert submit(client, cycle, team["a"], team["b"]).status_code == 201

    clock.now = datetime(2026, 4, 1, 0, 0, 1, tzinfo=TZ)
    r = submit(client, cycle, team["a"], team["c"])
    assert r.status_code == 409
    assert r.json()["details"] == {"state": "EXPIRED"}


def test_cycle_outside_agency_scope(client, db_session, team):
    cycle = create_cycle(db_session, agencies=[team["other"]])

    r = submit(client, cycle, team["a"], team["b"])
    assert r.status_code == 409
    assert r.json()["error_code"] == "OUT_OF_SCOPE"


def test_cannot_evaluate_yourself(client, db_session, team):
    cycle = create_cycle(db_session)
    r = submit(client, cycle, team["a"], team["a"])
    assert r.status_code == 422
    assert r.json()["error_code"] == "INVALID_EVALUATION"


def test_cannot_evaluate_other_agency(client, db_session, team):
    cycle = create_cycle(db_session)
    r = submit(client, cycle, team["a"], team["x"])
    assert r.status_code == 422


def test_cannot_evaluate_admin(client, db_session, team):
    cycle = create_cycle(db_session)
    r = submit(client, cycle, team["a"], team["admin"])
    assert r.status_code == 422


def test_admin_does_not_evaluate(client, db_session, team):
    cycle = create_cycle(db_session)
    r = submit(client, cycle, team["admin"], team["a"])
    assert r.status_code == 403
    assert r.json()["error_code"] == "FORBIDDEN"


def test_unknown_colleague(client, db_session, team):
    cycle = create_cycle(db_session)
    r = client.post(
        f"/cycles/{cycle.id}/evaluations",
        json={"evaluatee_id": "00000000-0000-0000-0000-000000000001", "scores": GOOD_SCORES},
        headers=auth(team["a"]),
    )
    assert r.status_code == 404


@pytest.mark.parametrize(
    "scores",
    [
        {"c1": 90},
        {"c1": 90, "c2": 80, "c3": 70},
        {"c1": 101, "c2": 80},
        {"c1": -1, "c2": 80},
    ],
)
def test_scores_must_match_criteria_and_range(client, db_session, team, scores):
    cycle = create_cycle(db_session)
    r = submit(client, cycle, team["a"], team["b"], scores=scores)
    assert r.status_code == 422
    assert r.json()["error_code"] == "INVALID_EVALUATION"


def test_cycle_without_ratings_refuses_submissions(client, db_session, team):
    cycle = create_cycle(db_session, ratings=[])
    r = submit(client, cycle, team["a"], team["b"])
    assert r.status_code == 409
    assert r.json()["error_code"] == "INCOMPLETE_CONFIGURATION"
    assert r.json()["details"] == {"missing": ["ratings"]}


def test_missing_auth_header(client, db_session, team):
    cycle = create_cycle(db_session)
    r = client.post(f"/cycles/{cycle.id}/evaluations", json={"evaluatee_id": str(team["b"].id), "scores": GOOD_SCORES})
    assert r.status_code == 401


def test_employees_only_list_their_own_evaluations(client, db_session, team):
    cycle = create_cycle(db_session)
    create_evaluation(db_session, cycle, team["a"], team["b"], GOOD_SCORES)
    create_evaluation(db_session, cycle, team["b"], team["a"], GOOD_SCORES)

    r = client.get(f"/cycles/{cycle.id}/evaluations", headers=auth(team["a"]))
    assert r.status_code == 200
    assert [e["evaluatee_id"] for e in r.json()] == [str(team["b"].id)]

    r = client.get(f"/cycles/{cycle.id}/evaluations", headers=auth(team["admin"]))
    assert len(r.json()) == 2


def test_account_without_agency_cannot_evaluate(client, db_session, team):
    loner = create_user(db_session, "loner@local.test", name="Loan")
    drifter = create_user(db_session, "drifter@local.test", name="Duc")
    cycle = create_cycle(db_session)

    r = submit(client, cycle, loner, drifter)
    assert r.status_code == 409
    assert r.json()["error_code"] == "OUT_OF_SCOPE"
    assert db_session.query(Evaluation).count() == 0
