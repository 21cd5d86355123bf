from perfeval.db.session import SessionLocal
from perfeval.models.rbac import PROTECTED_ROLE_NAMES, Role

ROLE_NAMES = sorted(PROTECTED_ROLE_NAMES)

def main():
    db = SessionLocal()
    try:
        existing = {r.name for r in db.query(Role).all()}
        to_add = [Role(name=name) for name in ROLE_NAMES if name not in existing]
        if to_add:
            db.add_all(to_add)
            db.commit()
        print("Roles seeded:", ROLE_NAMES)
    finally:
        db.close()

if __name__ == "__main__":
    main()
