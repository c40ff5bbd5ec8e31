"""Schema creation and first-run data"""

import logging
from sqlalchemy.orm import Session
from member_finance.config import settings
from member_finance.domain.models import Role
from member_finance.domain.policy import SETTING_DEFAULTS
from member_finance.infrastructure.database.models import Base, Member
from member_finance.infrastructure.database.repositories import MemberRepository, SettingRepository
from member_finance.infrastructure.database.session import SessionLocal

logger = logging.getLogger(__name__)


def bootstrap(db: Session, admin_name: str, admin_email: str) -> Member:
    """
    Create tables, store default loan policy settings that are not set yet and
    make sure one administrator exists. Safe to run repeatedly.
    """
    Base.metadata.create_all(bind=db.get_bind())

    settings_repo = SettingRepository(db)
    existing = settings_repo.overrides()
    missing = {k: v for k, v in SETTING_DEFAULTS.items() if k not in existing}
    if missing:
        settings_repo.upsert(missing)

    members = MemberRepository(db)
    admin = members.get_by_email(admin_email)
    if admin is None:
        admin = members.create_member(name=admin_name, email=admin_email, role=Role.ADMIN)
        logger.info("Administrator created", extra={"member_id": admin.id})

    db.commit()
    return admin


if __name__ == "__main__":
    session = SessionLocal()
    try:
        admin = bootstrap(session, settings.bootstrap_admin_name, settings.bootstrap_admin_email)
        print(f"Administrator id: {admin.id}")
    finally:
        session.close()
