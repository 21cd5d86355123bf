from decimal import Decimal

from perfeval.core.principal import Principal, Role as PrincipalRole
from perfeval.models import (
    Comment,
    Criteria,
    CriteriaCategory,
    Department,
    Evaluation,
    EvaluationScore,
    EvaluationStatus,
    EvaluatorAssignment,
    Role,
    RoleAssignment,
    RoleCriteriaDescription,
    Team,
    User,
)


def create_department(db, name: str = "Engineering") -> Department:
    d = Department(name=name)
    db.add(d)
    db.commit()
    db.refresh(d)
    return d


def create_user(db, email: str, department: Department, first_name="Test", last_name="User") -> User:
    u = User(email=email, first_name=first_name, last_name=last_name, department_id=department.id)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def ensure_role(db, name: str) -> Role:
    r = db.query(Role).filter(Role.name == name).one_or_none()
    if r:
        return r
    r = Role(name=name)
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


def grant_role(db, user: User, role_name: str) -> RoleAssignment:
    role = ensure_role(db, role_name)
    ra = RoleAssignment(user_id=user.id, role_id=role.id)
    db.add(ra)
    db.commit()
    db.refresh(ra)
    return ra


def create_team(db, name: str = "Platform") -> Team:
    t = Team(name=name)
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


def assign(db, evaluator: User, employee: User, team: Team, is_active: bool = True) -> EvaluatorAssignment:
    a = EvaluatorAssignment(
        evaluator_id=evaluator.id,
        employee_id=employee.id,
        team_id=team.id,
        is_active=is_active,
    )
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


def create_category(db, name: str, weight, is_active: bool = True) -> CriteriaCategory:
    c = CriteriaCategory(name=name, weight=Decimal(str(weight)), is_active=is_active)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def create_criteria(db, category: CriteriaCategory, name: str, is_active: bool = True) -> Criteria:
    c = Criteria(category_id=category.id, name=name, is_active=is_active)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def create_description(db, criteria: Criteria, role: Role, text: str = "Meets the bar") -> RoleCriteriaDescription:
    d = RoleCriteriaDescription(criteria_id=criteria.id, role_id=role.id, description=text)
    db.add(d)
    db.commit()
    db.refresh(d)
    return d


def create_evaluation(db, evaluator: User, employee: User, status: str = EvaluationStatus.DRAFT.value) -> Evaluation:
    e = Evaluation(evaluator_id=evaluator.id, employee_id=employee.id, status=status, period="2026-H1")
    db.add(e)
    db.commit()
    db.refresh(e)
    return e


def add_score(db, evaluation: Evaluation, criteria: Criteria, score: int) -> EvaluationScore:
    s = EvaluationScore(evaluation_id=evaluation.id, criteria_id=criteria.id, score=score)
    db.add(s)
    db.commit()
    db.refresh(s)
    return s


def add_comment(db, score: EvaluationScore, text: str = "Solid work") -> Comment:
    c = Comment(score_id=score.id, description=text)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def principal(user: User | None, role: str) -> Principal:
    if user is None:
        return Principal(user_id=0, role=None)
    return Principal(user_id=user.id, role=PrincipalRole(role), department_id=user.department_id)


def headers(user: User, role: str) -> dict[str, str]:
    return {
        "X-User-Id": str(user.id),
        "X-User-Role": role,
        "X-Department-Id": str(user.department_id),
    }


def build_org(db):
    """
    Two teams, one evaluator each, plus one employee on each team.

      ev1 -- team A -- emp1, emp2
      ev2 -- team B -- emp3
    """
    dept = create_department(db)
    admin = create_user(db, "admin@local.test", dept, "Ada", "Min")
    ev1 = create_user(db, "ev1@local.test", dept, "Eve", "One")
    ev2 = create_user(db, "ev2@local.test", dept, "Eve", "Two")
    emp1 = create_user(db, "emp1@local.test", dept, "Emp", "One")
    emp2 = create_user(db, "emp2@local.test", dept, "Emp", "Two")
    emp3 = create_user(db, "emp3@local.test", dept, "Emp", "Three")
    team_a = create_team(db, "Team A")
    team_b = create_team(db, "Team B")
    assign(db, ev1, emp1, team_a)
    assign(db, ev1, emp2, team_a)
    assign(db, ev2, emp3, team_b)
    return {
        "dept": dept, "admin": admin,
        "ev1": ev1, "ev2": ev2,
        "emp1": emp1, "emp2": emp2, "emp3": emp3,
        "team_a": team_a, "team_b": team_b,
    }


def build_criteria(db, weights=(60, 40), per_category: int = 1):
    """Active categories with the given weights, each holding `per_category` criteria."""
    categories = []
    criteria = []
    for i, w in enumerate(weights, start=1):
        cat = create_category(db, f"Category {i}", w)
        categories.append(cat)
        for j in range(1, per_category + 1):
            criteria.append(create_criteria(db, cat, f"Criterion {i}.{j}"))
    return categories, criteria
