"""
Audit service - append-only operation trail
Entries join the caller's transaction: they commit or roll back with the
mutation they describe.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from waterbill.models.ontology import AuditLog, AuditAction
from waterbill.security.context import ActorContext, SYSTEM_ACTOR
from waterbill.services.pagination import paginate

logger = logging.getLogger(__name__)


class AuditService:
    """Audit recorder and audit queries"""

    def __init__(self, db: Session):
        self.db = db

    def log(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[int] = None,
        actor: Optional[ActorContext] = None,
        details: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
        performed_by: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> AuditLog:
        """
        Record one audit entry inside the current transaction

        Args:
            action: CREATE, UPDATE, DELETE or PAYMENT
            entity_type: table name of the affected entity
            entity_id: affected row id
            actor: acting identity; explicit performed_by/ip_address win over it
            details: structured payload, stored as JSON
            description: human-readable summary

        The entry is flushed, never committed here.
        """
        if actor is not None:
            performed_by = performed_by or actor.performed_by
            ip_address = ip_address or actor.ip_address

        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            performed_by=performed_by or SYSTEM_ACTOR,
            ip_address=ip_address,
            details=json.dumps(details, default=str, ensure_ascii=False) if details is not None else None,
            description=description,
        )
        self.db.add(entry)
        self.db.flush()

        logger.debug(f"Audit {entry.action.value} {entity_type}#{entity_id} by {entry.performed_by}")
        return entry

    def get_logs(self, page: int = 1, limit: int = 20) -> Tuple[List[AuditLog], Dict[str, int]]:
        """Newest first, paginated"""
        query = self.db.query(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        return paginate(query, page, limit)

    def get_logs_by_entity(self, entity_type: str, entity_id: int) -> List[AuditLog]:
        """Full history of one entity, newest first"""
        return self.db.query(AuditLog).filter(
            AuditLog.entity_type == entity_type,
            AuditLog.entity_id == entity_id
        ).order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).all()

    @staticmethod
    def to_dict(entry: AuditLog) -> Dict[str, Any]:
        """Serialize an entry with its details decoded"""
        return {
            "id": entry.id,
            "action": entry.action,
            "entity_type": entry.entity_type,
            "entity_id": entry.entity_id,
            "performed_by": entry.performed_by,
            "ip_address": entry.ip_address,
            "details": json.loads(entry.details) if entry.details else None,
            "description": entry.description,
            "created_at": entry.created_at,
        }
