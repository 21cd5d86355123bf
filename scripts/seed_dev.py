# seed_dev.py
from decimal import Decimal

from sqlalchemy.orm import Session

from perfeval.db.session import SessionLocal
from perfeval.models import (
    Criteria,
    CriteriaCategory,
    Department,
    EvaluatorAssignment,
    Role,
    RoleAssignment,
    Team,
    User,
)


# ---------- helpers: organization ----------

def get_or_create_department(db: Session, name: str) -> Department:
    d = db.query(Department).filter(Department.name == name).one_or_none()
    if d:
        return d
    d = Department(name=name)
    db.add(d)
    db.commit()
    db.refresh(d)
    return d


def get_or_create_role(db: Session, name: str) -> Role:
    r = db.query(Role).filter(Role.name == name).one_or_none()
    if r:
        return r
    r = Role(name=name)
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


def get_or_create_user(db: Session, email: str, first_name: str, last_name: str, department_id: int) -> User:
    u = db.query(User).filter(User.email == email).one_or_none()
    if u:
        # keep these up to date in dev
        changed = False
        if u.department_id != department_id:
            u.department_id = department_id
            changed = True
        if not u.is_active:
            u.is_active = True
            changed = True
        if changed:
            db.commit()
            db.refresh(u)
        return u

    u = User(email=email, first_name=first_name, last_name=last_name, department_id=department_id)
    db.add(u)
    db.commit()
    db.refresh(u)
    return u


def ensure_role_assignment(db: Session, user_id: int, role_id: int) -> RoleAssignment:
    ra = (
        db.query(RoleAssignment)
        .filter(RoleAssignment.user_id == user_id, RoleAssignment.role_id == role_id)
        .one_or_none()
    )
    if ra:
        return ra
    ra = RoleAssignment(user_id=user_id, role_id=role_id)
    db.add(ra)
    db.commit()
    return ra


def get_or_create_team(db: Session, name: str) -> Team:
    t = db.query(Team).filter(Team.name == name).one_or_none()
    if t:
        return t
    t = Team(name=name)
    db.add(t)
    db.commit()
    db.refresh(t)
    return t


def ensure_assignment(db: Session, *, evaluator_id: int, employee_id: int, team_id: int) -> EvaluatorAssignment:
    a = (
        db.query(EvaluatorAssignment)
        .filter(
            EvaluatorAssignment.evaluator_id == evaluator_id,
            EvaluatorAssignment.employee_id == employee_id,
            EvaluatorAssignment.team_id == team_id,
        )
        .one_or_none()
    )
    if a:
        if not a.is_active:
            a.is_active = True
            db.commit()
        return a
    a = EvaluatorAssignment(evaluator_id=evaluator_id, employee_id=employee_id, team_id=team_id)
    db.add(a)
    db.commit()
    return a


# ---------- helpers: criteria ----------

def get_or_create_category(db: Session, name: str, weight: Decimal) -> CriteriaCategory:
    c = db.query(CriteriaCategory).filter(CriteriaCategory.name == name).one_or_none()
    if c:
        return c
    c = CriteriaCategory(name=name, weight=weight)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


def get_or_create_criteria(db: Session, category_id: int, name: str) -> Criteria:
    c = (
        db.query(Criteria)
        .filter(Criteria.category_id == category_id, Criteria.name == name)
        .one_or_none()
    )
    if c:
        return c
    c = Criteria(category_id=category_id, name=name)
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


# ---------- main ----------

def main():
    db = SessionLocal()
    try:
        # ---- Roles ----
        admin_role = get_or_create_role(db, "Admin")
        evaluator_role = get_or_create_role(db, "Evaluator")
        employee_role = get_or_create_role(db, "Employee")

        # ---- Users ----
        engineering = get_or_create_department(db, "Engineering")
        admin = get_or_create_user(db, "admin@local.test", "Admin", "Local", engineering.id)
        evaluator = get_or_create_user(db, "evaluator@local.test", "Eva", "Luator", engineering.id)
        employee = get_or_create_user(db, "employee@local.test", "Emma", "Ployee", engineering.id)

        ensure_role_assignment(db, admin.id, admin_role.id)
        ensure_role_assignment(db, evaluator.id, evaluator_role.id)
        ensure_role_assignment(db, employee.id, employee_role.id)

        # ---- Team ----
        platform = get_or_create_team(db, "Platform")
        ensure_assignment(db, evaluator_id=evaluator.id, employee_id=employee.id, team_id=platform.id)

        # ---- Criteria: weights add up to 100 ----
        technical = get_or_create_category(db, "Technical", Decimal("60"))
        soft = get_or_create_category(db, "Soft Skills", Decimal("40"))
        get_or_create_criteria(db, technical.id, "Code quality")
        get_or_create_criteria(db, technical.id, "Delivery")
        get_or_create_criteria(db, soft.id, "Communication")

        print("Dev data seeded")
        print("  admin      ->", admin.id)
        print("  evaluator  ->", evaluator.id)
        print("  employee   ->", employee.id)
    finally:
        db.close()


if __name__ == "__main__":
    main()
