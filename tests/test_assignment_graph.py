from perfeval.core.assignment_graph import AssignmentGraph
from perfeval.models import EvaluatorAssignment

from tests.helpers import assign, build_org, create_team


def test_teams_and_employees_of_evaluator(db_session, store):
    org = build_org(db_session)
    graph = AssignmentGraph(store)

    assert graph.teams_of(org["ev1"].id) == {org["team_a"].id}
    assert graph.employees_of(org["ev1"].id) == {org["emp1"].id, org["emp2"].id}
    assert graph.teams_as_employee(org["emp3"].id) == {org["team_b"].id}
    assert graph.employees_of(org["emp1"].id) == set()


def test_reachability_is_direct_or_teammate(db_session, store):
    org = build_org(db_session)
    graph = AssignmentGraph(store)

    assert graph.directly_assigned(org["ev1"].id, org["emp1"].id)
    assert graph.is_reachable(org["ev1"].id, org["emp2"].id)
    assert not graph.is_reachable(org["ev1"].id, org["emp3"].id)
    assert not graph.is_reachable(org["ev2"].id, org["emp1"].id)
    assert not graph.is_reachable(org["ev1"].id, None)


def test_teammate_without_direct_assignment(db_session, store):
    org = build_org(db_session)
    # ev2 joins team A through emp3, which makes emp1 a teammate but not a direct report
    assign(db_session, org["ev2"], org["emp3"], org["team_a"])
    graph = AssignmentGraph(store)

    assert graph.is_teammate(org["ev2"].id, org["emp1"].id)
    assert not graph.directly_assigned(org["ev2"].id, org["emp1"].id)
    assert graph.is_reachable(org["ev2"].id, org["emp1"].id)
    assert not graph.can_evaluate(org["ev2"].id, org["emp1"].id)
    assert graph.can_evaluate(org["ev2"].id, org["emp3"].id)


def test_inactive_assignments_are_ignored(db_session, store):
    org = build_org(db_session)
    team_c = create_team(db_session, "Team C")
    assign(db_session, org["ev2"], org["emp1"], team_c, is_active=False)
    graph = AssignmentGraph(store)

    assert team_c.id not in graph.teams_of(org["ev2"].id)
    assert not graph.is_reachable(org["ev2"].id, org["emp1"].id)


def test_reachability_follows_assignment_toggles(db_session, store):
    org = build_org(db_session)
    graph = AssignmentGraph(store)
    assert graph.is_reachable(org["ev2"].id, org["emp3"].id)

    row = (
        db_session.query(EvaluatorAssignment)
        .filter(EvaluatorAssignment.evaluator_id == org["ev2"].id)
        .one()
    )
    row.is_active = False
    db_session.commit()

    assert not graph.is_reachable(org["ev2"].id, org["emp3"].id)
    assert graph.teams_of(org["ev2"].id) == set()
