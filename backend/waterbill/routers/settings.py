"""
Tariff settings routes
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from waterbill.database import get_db
from waterbill.models.ontology import User
from waterbill.models.schemas import SettingResponse, SettingUpdate
from waterbill.security.auth import get_actor, require_admin, require_any_role
from waterbill.security.context import ActorContext
from waterbill.services.settings_service import SettingsService

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=List[SettingResponse])
def list_settings(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_any_role)
):
    """All tariff settings"""
    return SettingsService(db).list_settings()


@router.patch("/{key}", response_model=SettingResponse)
def update_setting(
    key: str,
    data: SettingUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Change a tariff setting; existing bills are not recalculated"""
    return SettingsService(db).update_setting(key, data.value, actor)
