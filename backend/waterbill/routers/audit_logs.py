"""
Audit log routes
"""
from typing import List
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from waterbill.database import get_db
from waterbill.models.ontology import User
from waterbill.models.schemas import AuditLogResponse, AuditLogListResponse
from waterbill.security.auth import require_admin
from waterbill.services.audit_service import AuditService

router = APIRouter(prefix="/audit-logs", tags=["Audit Logs"])


@router.get("", response_model=AuditLogListResponse)
def get_logs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Audit trail, newest first"""
    service = AuditService(db)
    logs, meta = service.get_logs(page, limit)
    return {"data": [service.to_dict(log) for log in logs], "meta": meta}


@router.get("/entity/{entity_type}/{entity_id}", response_model=List[AuditLogResponse])
def get_logs_by_entity(
    entity_type: str,
    entity_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """History of one entity"""
    service = AuditService(db)
    return [service.to_dict(log) for log in service.get_logs_by_entity(entity_type, entity_id)]
