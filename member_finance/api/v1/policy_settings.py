"""GET/PUT /v1/settings - loan policy settings"""

import logging
from typing import Any, Dict
from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from member_finance.api.dependencies import get_request_id, require_admin, require_staff
from member_finance.infrastructure.database.models import Member
from member_finance.infrastructure.database.session import get_db
from member_finance.infrastructure.database.repositories import SettingRepository
from member_finance.domain.policy import resolve_settings, validate_setting_updates
from member_finance.domain.exceptions import ValidationError

router = APIRouter()


@router.get("/settings", response_model=Dict[str, str])
def get_settings(
    db: Session = Depends(get_db),
    actor: Member = Depends(require_staff),
):
    """Persisted overrides merged over the default policy table"""
    return resolve_settings(SettingRepository(db).overrides())


@router.put("/settings", response_model=Dict[str, str])
def update_settings(
    request: Request,
    updates: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    actor: Member = Depends(require_admin),
):
    """
    Update policy settings (admins only).

    Unknown keys are ignored; every value must be a non-negative number and
    all accepted values are written in one database transaction.
    """
    request_id = get_request_id(request)
    repo = SettingRepository(db)

    try:
        accepted = validate_setting_updates(updates, repo.overrides())
        repo.upsert(accepted)
        db.commit()

    except ValidationError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    logging.info(
        "Settings updated",
        extra={"request_id": request_id, "keys": sorted(accepted), "actor_id": actor.id},
    )
    return resolve_settings(repo.overrides())
