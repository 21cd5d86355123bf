import pytest
from sqlalchemy.exc import SQLAlchemyError

from perfeval.core.cascade import CascadeDeactivator
from perfeval.core.errors import Outcome, UnrecoverableError
from perfeval.db.store import EntityKind, SqlStore
from perfeval.models import (
    AuditEvent,
    CriteriaCategory,
    EvaluationScore,
    EvaluatorAssignment,
    RoleAssignment,
    Team,
    User,
)

from tests.helpers import (
    add_comment,
    add_score,
    assign,
    build_criteria,
    build_org,
    create_department,
    create_description,
    create_evaluation,
    create_team,
    create_user,
    ensure_role,
    grant_role,
)


class FailingStore(SqlStore):
    """Raises a storage error when applying the n-th mutation of a batch."""

    def __init__(self, db, fail_on: int):
        super().__init__(db)
        self.fail_on = fail_on
        self.calls = 0

    def _apply(self, mutation):
        self.calls += 1
        if self.calls == self.fail_on:
            raise SQLAlchemyError("simulated write failure")
        super()._apply(mutation)


def _team_with_five(db):
    dept = create_department(db)
    evaluator = create_user(db, "lead@local.test", dept)
    team = create_team(db)
    rows = []
    for i in range(5):
        member = create_user(db, f"member{i}@local.test", dept)
        rows.append(assign(db, evaluator, member, team))
    return team, rows


def test_team_cascade_deactivates_every_assignment(db_session, store):
    team, rows = _team_with_five(db_session)

    result = CascadeDeactivator(store).cascade_deactivate(EntityKind.TEAM, team.id, actor_id=None)

    assert result
    assert result.value == 5
    assert not team.is_active
    assert all(not r.is_active for r in rows)
    event = db_session.query(AuditEvent).one()
    assert event.action == "CASCADE_DEACTIVATED"
    assert event.event_metadata == {"dependents": 5}


def test_failed_cascade_changes_nothing(db_session):
    team, rows = _team_with_five(db_session)
    failing = FailingStore(db_session, fail_on=3)

    with pytest.raises(UnrecoverableError):
        CascadeDeactivator(failing).cascade_deactivate(EntityKind.TEAM, team.id)

    inactive = failing.count(EntityKind.EVALUATOR_ASSIGNMENT, EvaluatorAssignment.is_active.is_(False))
    assert inactive == 0
    assert all(r.is_active for r in rows)
    assert db_session.get(Team, team.id).is_active
    assert db_session.query(AuditEvent).count() == 0


def test_failure_on_root_or_audit_also_rolls_back(db_session):
    team, _ = _team_with_five(db_session)
    # 5 dependents, then the root (6th), then the audit row (7th)
    for fail_on in (6, 7):
        failing = FailingStore(db_session, fail_on=fail_on)
        with pytest.raises(UnrecoverableError):
            CascadeDeactivator(failing).cascade_deactivate(EntityKind.TEAM, team.id)
        assert failing.count(EntityKind.EVALUATOR_ASSIGNMENT, EvaluatorAssignment.is_active.is_(False)) == 0
        assert db_session.get(Team, team.id).is_active


def test_department_cascade_covers_users(db_session, store):
    org = build_org(db_session)

    result = CascadeDeactivator(store).cascade_deactivate(EntityKind.DEPARTMENT, org["dept"].id)

    assert result.value == 6
    assert store.count(EntityKind.USER, User.is_active.is_(True)) == 0


def test_user_cascade_covers_both_assignment_sides_and_roles(db_session, store):
    org = build_org(db_session)
    grant_role(db_session, org["ev1"], "Evaluator")

    result = CascadeDeactivator(store).cascade_deactivate(EntityKind.USER, org["ev1"].id)

    assert result.value == 3
    assert not store.exists(
        EntityKind.EVALUATOR_ASSIGNMENT,
        EvaluatorAssignment.evaluator_id == org["ev1"].id,
        EvaluatorAssignment.is_active.is_(True),
    )
    # ev2's assignment is untouched
    assert store.count(EntityKind.EVALUATOR_ASSIGNMENT, EvaluatorAssignment.is_active.is_(True)) == 1
    assert store.count(EntityKind.ROLE_ASSIGNMENT, RoleAssignment.is_active.is_(True)) == 0


def test_custom_role_cascades_but_system_roles_are_protected(db_session, store):
    org = build_org(db_session)
    grant_role(db_session, org["emp1"], "Mentor")
    admin_assignment = grant_role(db_session, org["admin"], "Admin")
    cascade = CascadeDeactivator(store)

    mentor = ensure_role(db_session, "Mentor")
    assert cascade.cascade_deactivate(EntityKind.ROLE, mentor.id).value == 1

    admin_role = ensure_role(db_session, "Admin")
    result = cascade.cascade_deactivate(EntityKind.ROLE, admin_role.id)
    assert result.outcome is Outcome.INVALID_STATE
    assert admin_role.is_active
    assert admin_assignment.is_active
    assert cascade.hard_delete(EntityKind.ROLE, admin_role.id).outcome is Outcome.INVALID_STATE


def test_criteria_cascade_keeps_historical_scores(db_session, store):
    org = build_org(db_session)
    _, (crit, _) = build_criteria(db_session)
    role = ensure_role(db_session, "Evaluator")
    description = create_description(db_session, crit, role)
    e = create_evaluation(db_session, org["ev1"], org["emp1"])
    s = add_score(db_session, e, crit, 4)

    result = CascadeDeactivator(store).cascade_deactivate(EntityKind.CRITERIA, crit.id)

    assert result.value == 1
    assert not description.is_active
    assert db_session.get(EvaluationScore, s.id).is_active


def test_evaluation_cascade_covers_scores_and_comments(db_session, store):
    org = build_org(db_session)
    _, criteria = build_criteria(db_session)
    e = create_evaluation(db_session, org["ev1"], org["emp1"])
    s1 = add_score(db_session, e, criteria[0], 4)
    s2 = add_score(db_session, e, criteria[1], 2)
    c = add_comment(db_session, s1)

    result = CascadeDeactivator(store).cascade_deactivate(EntityKind.EVALUATION, e.id)

    assert result.value == 3
    assert not any(x.is_active for x in (e, s1, s2, c))


def test_category_has_no_dependents(db_session, store):
    (c1, _), (crit, _) = build_criteria(db_session)

    result = CascadeDeactivator(store).cascade_deactivate(EntityKind.CRITERIA_CATEGORY, c1.id)

    assert result.value == 0
    assert not db_session.get(CriteriaCategory, c1.id).is_active
    assert crit.is_active


def test_invalid_targets(db_session, store):
    team, _ = _team_with_five(db_session)
    cascade = CascadeDeactivator(store)

    assert cascade.cascade_deactivate(EntityKind.SCORE, 1).outcome is Outcome.VALIDATION_FAILED
    assert cascade.cascade_deactivate(EntityKind.TEAM, 9999).outcome is Outcome.INVALID_STATE
    assert cascade.cascade_deactivate(EntityKind.TEAM, team.id)
    assert cascade.cascade_deactivate(EntityKind.TEAM, team.id).outcome is Outcome.INVALID_STATE


def test_reactivate_flips_only_the_root(db_session, store):
    team, rows = _team_with_five(db_session)
    cascade = CascadeDeactivator(store)
    cascade.cascade_deactivate(EntityKind.TEAM, team.id)

    result = cascade.reactivate(EntityKind.TEAM, team.id, actor_id=None)

    assert result
    assert team.is_active
    assert all(not r.is_active for r in rows)
    assert cascade.reactivate(EntityKind.TEAM, team.id).outcome is Outcome.INVALID_STATE
    actions = [a for (a,) in db_session.query(AuditEvent.action).order_by(AuditEvent.id)]
    assert actions == ["CASCADE_DEACTIVATED", "REACTIVATED"]


def test_hard_delete_requires_no_dependents(db_session, store):
    org = build_org(db_session)
    cascade = CascadeDeactivator(store)
    empty_team = create_team(db_session, "Empty")

    assert cascade.hard_delete(EntityKind.TEAM, org["team_a"].id).outcome is Outcome.INVALID_STATE
    assert cascade.hard_delete(EntityKind.TEAM, 9999).outcome is Outcome.INVALID_STATE

    assert cascade.hard_delete(EntityKind.TEAM, empty_team.id)
    assert db_session.get(Team, empty_team.id) is None
    assert db_session.query(AuditEvent).filter(AuditEvent.action == "HARD_DELETED").count() == 1


def test_reactivation_needs_an_active_parent(db_session, store):
    team, rows = _team_with_five(db_session)
    cascade = CascadeDeactivator(store)
    cascade.cascade_deactivate(EntityKind.TEAM, team.id)

    result = cascade.reactivate(EntityKind.EVALUATOR_ASSIGNMENT, rows[0].id)

    assert result.outcome is Outcome.INVALID_STATE
    assert "team" in result.reason
    assert not rows[0].is_active

    assert cascade.reactivate(EntityKind.TEAM, team.id)
    assert cascade.reactivate(EntityKind.EVALUATOR_ASSIGNMENT, rows[0].id)
    assert rows[0].is_active
    assert all(not r.is_active for r in rows[1:])


def test_assignment_stays_off_while_its_team_is_off(db_session, store):
    org = build_org(db_session)
    cascade = CascadeDeactivator(store)
    row = (
        db_session.query(EvaluatorAssignment)
        .filter(EvaluatorAssignment.evaluator_id == org["ev2"].id)
        .one()
    )
    cascade.cascade_deactivate(EntityKind.TEAM, org["team_b"].id)

    assert cascade.reactivate(EntityKind.EVALUATOR_ASSIGNMENT, row.id).outcome is Outcome.INVALID_STATE
    assert not store.exists(
        EntityKind.EVALUATOR_ASSIGNMENT,
        EvaluatorAssignment.evaluator_id == org["ev2"].id,
        EvaluatorAssignment.is_active.is_(True),
    )
