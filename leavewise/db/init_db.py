"""
Initial data bootstrap
"""
import logging
from typing import Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from leavewise.core.config import settings
from leavewise.core.security import hash_password
from leavewise.models.audit_log import AuditAction
from leavewise.models.employee import Employee, Role
from leavewise.services import balance_ledger
from leavewise.services.audit_service import log_audit
from leavewise.utils.datetime_utils import today_utc

logger = logging.getLogger(__name__)


def bootstrap_initial_admin(db: Session) -> Optional[Employee]:
    """
    Create the initial admin (with an allocated leave ledger) when no admin
    exists. Returns the new admin, or None when nothing was created.
    """
    try:
        if db.query(Employee).filter(Employee.role == Role.ADMIN.value).first():
            logger.info("Admin user already exists, skipping initial bootstrap")
            return None
    except OperationalError as e:
        if "no such table" in str(e).lower():
            logger.warning("Database tables not ready yet, skipping initial bootstrap")
            return None
        raise

    logger.info("No admin user found, creating initial admin")
    try:
        admin = Employee(
            name="System Administrator",
            email=settings.INITIAL_ADMIN_EMAIL.strip().lower(),
            role=Role.ADMIN.value,
            password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
            join_date=today_utc(),
            active=True,
        )
        db.add(admin)
        db.flush()
        balance_ledger.allocate_entitlements(db, admin)
        log_audit(
            db,
            actor_id=None,
            action=AuditAction.CREATE.value,
            target_model="Employee",
            target_id=admin.id,
            changes={"after": {"email": admin.email, "role": admin.role}, "source": "bootstrap"},
            commit=False,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(admin)
    logger.info("Initial admin user created: email=%s", admin.email)
    logger.info("Password: [set via INITIAL_ADMIN_PASSWORD environment variable]")
    return admin
