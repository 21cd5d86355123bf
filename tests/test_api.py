from decimal import Decimal

from fastapi.testclient import TestClient

from perfeval.models import AuditEvent

from tests.helpers import (
    add_score,
    build_criteria,
    build_org,
    create_evaluation,
    headers,
)


def test_health_ok(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_me_reports_resolved_principal(db_session, client: TestClient):
    org = build_org(db_session)

    r = client.get("/me", headers=headers(org["ev1"], "Evaluator"))
    assert r.status_code == 200
    body = r.json()
    assert body["role"] == "Evaluator"
    assert body["team_ids"] == [org["team_a"].id]
    assert body["employee_ids"] == sorted([org["emp1"].id, org["emp2"].id])

    r = client.get("/me", headers={"X-User-Id": "abc", "X-User-Role": "Admin"})
    assert r.json()["has_access"] is False


def test_list_evaluations_is_scoped(db_session, client: TestClient):
    org = build_org(db_session)
    e1 = create_evaluation(db_session, org["ev1"], org["emp1"])
    e2 = create_evaluation(db_session, org["ev1"], org["emp2"])
    e3 = create_evaluation(db_session, org["ev2"], org["emp3"])

    def ids(user, role):
        r = client.get("/evaluations", headers=headers(user, role))
        assert r.status_code == 200
        return {row["id"] for row in r.json()}

    assert ids(org["admin"], "Admin") == {e1.id, e2.id, e3.id}
    assert ids(org["ev1"], "Evaluator") == {e1.id, e2.id}
    assert ids(org["emp1"], "Employee") == {e1.id}
    assert client.get("/evaluations").json() == []


def test_list_evaluations_with_pagination(db_session, client: TestClient):
    org = build_org(db_session)
    for _ in range(3):
        create_evaluation(db_session, org["ev1"], org["emp1"])

    r = client.get(
        "/evaluations",
        params={"limit": 2, "include_pagination": True},
        headers=headers(org["admin"], "Admin"),
    )
    body = r.json()
    assert len(body["items"]) == 2
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["has_more"] is True


def test_invisible_evaluation_looks_missing(db_session, client: TestClient):
    org = build_org(db_session)
    e = create_evaluation(db_session, org["ev1"], org["emp1"])

    hidden = client.get(f"/evaluations/{e.id}", headers=headers(org["emp2"], "Employee"))
    missing = client.get("/evaluations/9999", headers=headers(org["emp2"], "Employee"))

    assert hidden.status_code == missing.status_code == 404
    assert hidden.json() == missing.json()


def test_evaluation_detail_includes_running_total(db_session, client: TestClient):
    org = build_org(db_session)
    _, (a, b) = build_criteria(db_session, weights=(60, 40))
    e = create_evaluation(db_session, org["ev1"], org["emp1"])
    add_score(db_session, e, a, 5)
    add_score(db_session, e, b, 3)

    r = client.get(f"/evaluations/{e.id}", headers=headers(org["emp1"], "Employee"))

    assert r.status_code == 200
    body = r.json()
    assert Decimal(body["current_total"]) == Decimal("4.2")
    assert len(body["scores"]) == 2
    assert [c["count"] for c in body["categories"]] == [1, 1]


def test_full_workflow_over_http(db_session, client: TestClient):
    org = build_org(db_session)
    _, (a, b) = build_criteria(db_session, weights=(60, 40))
    ev = headers(org["ev1"], "Evaluator")
    admin = headers(org["admin"], "Admin")

    r = client.post("/evaluations", json={"evaluator_id": org["ev1"].id, "employee_id": org["emp1"].id}, headers=ev)
    assert r.status_code == 201
    evaluation_id = r.json()["id"]
    assert r.json()["status"] == "Draft"

    r = client.put(f"/evaluations/{evaluation_id}/scores", json={"criteria_id": a.id, "score": 5}, headers=ev)
    assert r.status_code == 200
    score_id = r.json()["id"]

    r = client.post(f"/evaluations/{evaluation_id}/submit", headers=ev)
    assert r.status_code == 409
    assert r.json()["detail"]["outcome"] == "INVALID_STATE"

    client.put(f"/evaluations/{evaluation_id}/scores", json={"criteria_id": b.id, "score": 3}, headers=ev)
    r = client.post(f"/scores/{score_id}/comments", json={"description": "Consistently strong"}, headers=ev)
    assert r.status_code == 201

    r = client.post(f"/evaluations/{evaluation_id}/submit", headers=ev)
    assert r.status_code == 200
    assert r.json()["status"] == "Completed"
    assert Decimal(r.json()["total_score"]) == Decimal("4.2")

    assert client.post(f"/evaluations/{evaluation_id}/approve", headers=ev).status_code == 403
    r = client.post(f"/evaluations/{evaluation_id}/approve", headers=admin)
    assert r.status_code == 200
    assert r.json()["status"] == "Approved"

    r = client.put(f"/evaluations/{evaluation_id}/scores", json={"criteria_id": a.id, "score": 1}, headers=admin)
    assert r.status_code == 409

    actions = {row.action for row in db_session.query(AuditEvent).all()}
    assert actions == {"EVALUATION_STARTED", "EVALUATION_SUBMITTED", "EVALUATION_APPROVED"}


def test_outcomes_map_to_status_codes(db_session, client: TestClient):
    org = build_org(db_session)
    _, (a, _) = build_criteria(db_session)
    e = create_evaluation(db_session, org["ev1"], org["emp1"])
    ev = headers(org["ev1"], "Evaluator")

    bad_score = client.put(f"/evaluations/{e.id}/scores", json={"criteria_id": a.id, "score": 9}, headers=ev)
    assert bad_score.status_code == 400
    assert bad_score.json()["detail"]["outcome"] == "VALIDATION_FAILED"

    not_mine = client.put(
        f"/evaluations/{e.id}/scores",
        json={"criteria_id": a.id, "score": 3},
        headers=headers(org["emp1"], "Employee"),
    )
    assert not_mine.status_code == 403

    unseen = client.put(
        f"/evaluations/{e.id}/scores",
        json={"criteria_id": a.id, "score": 3},
        headers=headers(org["ev2"], "Evaluator"),
    )
    assert unseen.status_code == 404


def test_categories_and_rebalance(db_session, client: TestClient):
    org = build_org(db_session)
    (c1, c2), _ = build_criteria(db_session, weights=(60, 40))
    admin = headers(org["admin"], "Admin")

    r = client.get("/categories/weights", headers=headers(org["emp1"], "Employee"))
    assert r.status_code == 200
    assert r.json()["is_valid"] is True

    payload = {"weights": [{"category_id": c1.id, "weight": "70"}, {"category_id": c2.id, "weight": "40"}]}
    assert client.post("/categories/rebalance", json=payload, headers=admin).status_code == 400
    assert client.post("/categories/rebalance", json=payload, headers=headers(org["ev1"], "Evaluator")).status_code == 403

    payload = {"weights": [{"category_id": c1.id, "weight": "50"}, {"category_id": c2.id, "weight": "50"}]}
    r = client.post("/categories/rebalance", json=payload, headers=admin)
    assert r.status_code == 200
    assert Decimal(r.json()["total_weight"]) == Decimal("100")

    listed = client.get("/categories", headers=headers(org["emp1"], "Employee")).json()
    assert sorted(Decimal(c["weight"]) for c in listed) == [Decimal("50"), Decimal("50")]


def test_admin_deactivate_and_reactivate(db_session, client: TestClient):
    org = build_org(db_session)
    admin = headers(org["admin"], "Admin")
    team_id = org["team_a"].id

    assert client.post(f"/admin/team/{team_id}/deactivate", headers=headers(org["ev1"], "Evaluator")).status_code == 403

    r = client.post(f"/admin/team/{team_id}/deactivate", headers=admin)
    assert r.status_code == 200
    assert r.json()["dependents_deactivated"] == 2

    assert client.post(f"/admin/team/{team_id}/deactivate", headers=admin).status_code == 409
    assert client.post(f"/admin/team/{team_id}/reactivate", headers=admin).status_code == 200
    assert client.delete(f"/admin/team/{team_id}", headers=admin).status_code == 409
    assert client.post(f"/admin/widget/{team_id}/deactivate", headers=admin).status_code == 422

    r = client.get("/audit", params={"entity_type": "team"}, headers=admin)
    assert [row["action"] for row in r.json()] == ["REACTIVATED", "CASCADE_DEACTIVATED"]
    assert client.get("/audit", headers=headers(org["emp1"], "Employee")).status_code == 403
