"""
Meter reading routes
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from waterbill.database import get_db
from waterbill.models.ontology import User
from waterbill.models.schemas import MeterReadingCreate, MeterReadingResponse, PeriodReport
from waterbill.security.auth import get_actor, require_admin, require_any_role, require_operator_or_admin
from waterbill.security.context import ActorContext
from waterbill.services.meter_reading_service import MeterReadingService

router = APIRouter(prefix="/meter-readings", tags=["Meter Readings"])


@router.post("", response_model=MeterReadingResponse, status_code=201)
def create_reading(
    data: MeterReadingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_operator_or_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Record a meter reading and issue its bill"""
    service = MeterReadingService(db)
    return service.create_reading(data.customer_id, data.period, data.meter_end, actor)


@router.get("/report", response_model=PeriodReport)
def get_report(
    period: str = Query(..., description="YYYY-MM"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_any_role)
):
    """All readings of one period"""
    return MeterReadingService(db).get_report(period)


@router.get("/{reading_id}", response_model=MeterReadingResponse)
def get_reading(
    reading_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_any_role)
):
    """Reading with its bill and items"""
    return MeterReadingService(db).get_reading(reading_id)


@router.delete("/{reading_id}")
def remove_reading(
    reading_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Delete a reading with its bill; the unpaid part leaves the customer balance"""
    return MeterReadingService(db).remove_reading(reading_id, actor)
