"""
Bill routes
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from waterbill.database import get_db
from waterbill.models.ontology import User
from waterbill.models.schemas import BillResponse, BillDetailResponse, PayBillRequest, PaymentResult
from waterbill.security.auth import get_actor, require_any_role, require_operator_or_admin
from waterbill.security.context import ActorContext
from waterbill.services.billing_service import BillingService

router = APIRouter(prefix="/bills", tags=["Bills"])


@router.get("/pending", response_model=List[BillResponse])
def get_pending_bills(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_any_role)
):
    """Bills still pending or partially paid"""
    return BillingService(db).get_pending_bills()


@router.get("/{bill_id}", response_model=BillDetailResponse)
def get_bill(
    bill_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_any_role)
):
    """Bill detail"""
    return BillingService(db).get_bill_detail(bill_id)


@router.patch("/{bill_id}/pay", response_model=PaymentResult)
def pay_bill(
    bill_id: int,
    data: PayBillRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_operator_or_admin),
    actor: ActorContext = Depends(get_actor)
):
    """Apply a payment, optionally assessing the late penalty"""
    service = BillingService(db)
    return service.pay_bill(bill_id, data.amount_paid, data.has_penalty, actor)
