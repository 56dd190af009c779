"""
Billing service - payment reconciliation
Applies payments to bills with partial, exact and over-payment handling and
a penalty assessed at most once per bill.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session, joinedload, selectinload
from waterbill.exceptions import AlreadySettled, InvalidInput, NotFound
from waterbill.models.ontology import (
    Bill, MeterReading, Customer, PaymentStatus, AuditAction, utcnow
)
from waterbill.security.context import ActorContext
from waterbill.services.audit_service import AuditService
from waterbill.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class BillingService:
    """Bill queries and payment reconciliation"""

    def __init__(self, db: Session):
        self.db = db

    def _bill_query(self):
        return self.db.query(Bill).options(
            joinedload(Bill.meter_reading).joinedload(MeterReading.customer),
            selectinload(Bill.items),
        )

    def get_bill(self, bill_id: int) -> Bill:
        """Live bill with reading, customer and items"""
        bill = self._bill_query().filter(
            Bill.id == bill_id,
            Bill.deleted_at.is_(None)
        ).first()
        if not bill:
            raise NotFound("Bill not found")
        return bill

    def get_bill_detail(self, bill_id: int) -> Dict[str, Any]:
        """Bill flattened with its period, usage and customer"""
        bill = self.get_bill(bill_id)
        reading = bill.meter_reading
        return {
            'id': bill.id,
            'meter_reading_id': bill.meter_reading_id,
            'period': reading.period,
            'usage': reading.usage,
            'customer': reading.customer,
            'total_amount': bill.total_amount,
            'penalty': bill.penalty,
            'amount_paid': bill.amount_paid,
            'remaining': bill.remaining,
            'change': bill.change,
            'payment_status': bill.payment_status,
            'paid_at': bill.paid_at,
            'created_at': bill.created_at,
            'items': bill.items,
        }

    def get_pending_bills(self) -> List[Bill]:
        """Live bills still pending or partially paid, newest first"""
        return self._bill_query().filter(
            Bill.deleted_at.is_(None),
            Bill.payment_status.in_([PaymentStatus.PENDING, PaymentStatus.PARTIAL])
        ).order_by(Bill.created_at.desc(), Bill.id.desc()).all()

    def pay_bill(self, bill_id: int, amount_paid: Decimal, has_penalty: bool = False,
                 actor: Optional[ActorContext] = None) -> Dict[str, Any]:
        """
        Apply one payment to a bill

        Args:
            bill_id: bill being paid
            amount_paid: cash tendered, must be positive
            has_penalty: assess the late penalty; only honoured on the first
                payment of a pending bill
            actor: acting identity for the audit entry

        Returns:
            payment result with the new remaining, change and status

        Raises:
            InvalidInput: amount_paid is not a positive finite number
            NotFound: bill missing or soft-deleted
            AlreadySettled: bill is already paid
        """
        try:
            amount_paid = Decimal(str(amount_paid))
        except InvalidOperation:
            raise InvalidInput(f"amountPaid must be a number, got {amount_paid!r}")
        if not amount_paid.is_finite() or amount_paid <= 0:
            raise InvalidInput("amountPaid must be greater than 0")

        # Row lock; SQLite ignores FOR UPDATE and serializes writers itself
        bill = self.db.query(Bill).filter(
            Bill.id == bill_id,
            Bill.deleted_at.is_(None)
        ).with_for_update().first()
        if not bill:
            raise NotFound("Bill not found")
        if bill.payment_status == PaymentStatus.PAID:
            raise AlreadySettled("Bill already paid")

        reading = bill.meter_reading
        # None once the customer row has been force deleted
        customer: Optional[Customer] = reading.customer
        was_pending = bill.payment_status == PaymentStatus.PENDING

        try:
            assessed_penalty = ZERO
            if was_pending:
                if has_penalty:
                    assessed_penalty = SettingsService(self.db).get_penalty_amount()
                bill.penalty = assessed_penalty
                outstanding = Decimal(bill.total_amount) + assessed_penalty
            else:
                outstanding = Decimal(bill.remaining)

            new_remaining = outstanding - amount_paid
            if new_remaining <= 0:
                change = abs(new_remaining)
                new_remaining = ZERO
                status = PaymentStatus.PAID
                bill.paid_at = utcnow()
            else:
                change = ZERO
                status = PaymentStatus.PARTIAL

            applied = amount_paid - change
            bill.amount_paid = Decimal(bill.amount_paid) + amount_paid
            bill.remaining = new_remaining
            bill.change = change
            bill.payment_status = status

            if customer is not None:
                customer.outstanding_balance = (
                    Decimal(customer.outstanding_balance) + assessed_penalty - applied
                )

            AuditService(self.db).log(
                action=AuditAction.PAYMENT,
                entity_type="bills",
                entity_id=bill.id,
                actor=actor,
                details={
                    "amount_paid": amount_paid,
                    "penalty": bill.penalty,
                    "remaining": new_remaining,
                    "change": change,
                    "status": status.value,
                    "customer_id": reading.customer_id,
                    "customer_name": customer.name if customer else None,
                    "period": reading.period,
                },
                description=f"Payment of Rp{amount_paid} for bill #{bill.id} ({status.value.upper()})",
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Payment on bill #{bill_id} rolled back", exc_info=True)
            raise

        logger.info(f"Bill #{bill_id} paid {amount_paid}: status {status.value}, "
                    f"remaining {new_remaining}, change {change}")
        return {
            "bill_id": bill_id,
            "amount_paid": amount_paid,
            "penalty": Decimal(bill.penalty),
            "remaining": new_remaining,
            "change": change,
            "payment_status": status,
            "message": "Payment complete" if status == PaymentStatus.PAID else "Partial payment recorded",
        }
