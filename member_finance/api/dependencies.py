"""Dependency injection for FastAPI endpoints"""

from typing import Callable
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from member_finance.domain.models import Role
from member_finance.infrastructure.database.models import Member
from member_finance.infrastructure.database.repositories import MemberRepository
from member_finance.infrastructure.database.session import get_db


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_current_actor(
    x_user_id: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Member:
    """
    Resolve the acting member from the X-User-Id header.

    Authentication happens upstream; this only loads the identity it vouched for.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    actor = MemberRepository(db).get(x_user_id)
    if actor is None or not actor.active:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return actor


def require_roles(*roles: str) -> Callable[..., Member]:
    """Build a dependency that admits only actors holding one of roles"""

    def dependency(actor: Member = Depends(get_current_actor)) -> Member:
        if actor.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return actor

    return dependency


require_staff = require_roles(*Role.STAFF)
require_admin = require_roles(Role.ADMIN)
