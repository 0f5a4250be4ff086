"""
Seed a small demo organisation: one department, a manager, two employees and
a few holidays. Existing rows (matched by email / department code) are left
unchanged. Run from the repository root with .env loaded.

Usage:
  python scripts/seed_demo.py
"""
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from leavewise.core.logging import setup_logging
from leavewise.db.init_db import bootstrap_initial_admin
from leavewise.db.session import SessionLocal, create_sqlite_schema
from leavewise.models.department import Department
from leavewise.models.employee import Employee, Role
from leavewise.models.holiday import Holiday, HolidayType
from leavewise.schemas.department import DepartmentCreate
from leavewise.schemas.employee import EmployeeCreate
from leavewise.services.department_service import create_department
from leavewise.services.employee_service import create_employee
from leavewise.services.holiday_service import create_holiday

DEMO_PASSWORD = "Demo@12345"

HOLIDAYS = [
    ("New Year's Day", date(2026, 1, 1), HolidayType.NATIONAL),
    ("Independence Day", date(2026, 8, 15), HolidayType.NATIONAL),
    ("Christmas", date(2026, 12, 25), HolidayType.NATIONAL),
    ("Company Foundation Day", date(2026, 4, 10), HolidayType.COMPANY),
]


def _employee(db, actor_id, name, email, role, department_id, manager_id=None):
    existing = db.query(Employee).filter(Employee.email == email).first()
    if existing:
        return existing
    return create_employee(
        db,
        EmployeeCreate(
            name=name,
            email=email,
            password=DEMO_PASSWORD,
            role=role,
            department_id=department_id,
            manager_id=manager_id,
            join_date=date(2025, 1, 6),
        ),
        actor_id,
    )


def main():
    setup_logging()
    create_sqlite_schema()

    db = SessionLocal()
    try:
        bootstrap_initial_admin(db)
        admin = db.query(Employee).filter(Employee.role == Role.ADMIN.value).first()

        department = db.query(Department).filter(Department.code == "ENG").first()
        if not department:
            department = create_department(db, DepartmentCreate(name="Engineering", code="ENG"), admin.id)

        manager = _employee(db, admin.id, "Maya Manager", "maya@leavewise.local", Role.MANAGER, department.id)
        if department.manager_id is None:
            department.manager_id = manager.id
            db.commit()
        _employee(db, admin.id, "Eli Employee", "eli@leavewise.local", Role.EMPLOYEE, department.id, manager.id)
        _employee(db, admin.id, "Noor Employee", "noor@leavewise.local", Role.EMPLOYEE, department.id, manager.id)

        for name, on, holiday_type in HOLIDAYS:
            if not db.query(Holiday).filter(Holiday.date == on).first():
                create_holiday(db, name, on, holiday_type, is_recurring=True, actor_id=admin.id)

        print(f"Demo data ready. Employee password: {DEMO_PASSWORD}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
