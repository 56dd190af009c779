"""
Meter reading service - ingestion layer
One reading produces one bill with ADMIN_FEE, K1 and K2 items and raises
the customer's outstanding balance, all in a single transaction.
"""
import logging
import re
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from waterbill.exceptions import Conflict, InvalidInput, NotFound
from waterbill.models.ontology import (
    Customer, MeterReading, Bill, BillItem, PaymentStatus, AuditAction
)
from waterbill.security.context import ActorContext
from waterbill.services.audit_service import AuditService
from waterbill.services.billing_calculator import calculate_charge
from waterbill.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

PERIOD_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")
MIN_YEAR = 2000
MAX_YEAR = 2100


def validate_period(period: str) -> str:
    """Accept YYYY-MM with year in [2000, 2100]"""
    match = PERIOD_PATTERN.match(period or "")
    if not match:
        raise InvalidInput("period format must be YYYY-MM (e.g., 2025-01)")
    year = int(match.group(1))
    if year < MIN_YEAR or year > MAX_YEAR:
        raise InvalidInput(f"period year must be between {MIN_YEAR} and {MAX_YEAR}")
    return period


class MeterReadingService:
    """Meter reading ingestion and queries"""

    def __init__(self, db: Session):
        self.db = db

    def _reading_query(self):
        return self.db.query(MeterReading).options(
            joinedload(MeterReading.customer),
            joinedload(MeterReading.bill).selectinload(Bill.items),
        )

    def get_last_reading(self, customer_id: int) -> Optional[MeterReading]:
        """Most recently created live reading of a customer"""
        return self.db.query(MeterReading).filter(
            MeterReading.customer_id == customer_id,
            MeterReading.deleted_at.is_(None)
        ).order_by(MeterReading.created_at.desc(), MeterReading.id.desc()).first()

    def create_reading(self, customer_id: int, period: str, meter_end: int,
                       actor: Optional[ActorContext] = None) -> MeterReading:
        """
        Record a meter reading and bill it

        Args:
            customer_id: customer being read
            period: billing period, YYYY-MM
            meter_end: meter value at the end of the period
            actor: acting identity for the audit entry

        Returns:
            the persisted reading with customer, bill and items loaded

        Raises:
            InvalidInput: bad period, negative or regressing meter value
            NotFound: customer missing or soft-deleted
            Conflict: the customer already has a reading for this period
        """
        validate_period(period)
        if meter_end is None or meter_end < 0:
            raise InvalidInput("meterEnd must be 0 or greater")

        customer = self.db.query(Customer).filter(
            Customer.id == customer_id,
            Customer.deleted_at.is_(None)
        ).first()
        if not customer:
            raise NotFound("Customer not found")

        existing = self.db.query(MeterReading.id).filter(
            MeterReading.customer_id == customer_id,
            MeterReading.period == period
        ).first()
        if existing:
            raise Conflict(f"Meter reading for period {period} already exists for this customer")

        last = self.get_last_reading(customer_id)
        meter_start = last.meter_end if last else 0
        if meter_end < meter_start:
            raise InvalidInput(
                f"meterEnd ({meter_end}) must be greater than or equal to last reading ({meter_start})"
            )

        usage = meter_end - meter_start
        charge = calculate_charge(usage, SettingsService(self.db).get_current_rates())

        try:
            reading = MeterReading(
                customer_id=customer.id,
                period=period,
                meter_start=meter_start,
                meter_end=meter_end,
                usage=usage,
            )
            self.db.add(reading)
            self.db.flush()

            bill = Bill(
                meter_reading_id=reading.id,
                total_amount=charge.total,
                penalty=Decimal("0"),
                amount_paid=Decimal("0"),
                remaining=charge.total,
                change=Decimal("0"),
                payment_status=PaymentStatus.PENDING,
            )
            self.db.add(bill)
            self.db.flush()

            for line in charge.lines:
                self.db.add(BillItem(
                    bill_id=bill.id,
                    type=line.type,
                    usage=line.usage,
                    rate=line.rate,
                    amount=line.amount,
                ))

            customer.outstanding_balance = Decimal(customer.outstanding_balance) + charge.total

            AuditService(self.db).log(
                action=AuditAction.CREATE,
                entity_type="meter_readings",
                entity_id=reading.id,
                actor=actor,
                details={
                    "customer_id": customer.id,
                    "customer_name": customer.name,
                    "period": period,
                    "meter_start": meter_start,
                    "meter_end": meter_end,
                    "usage": usage,
                    "bill_id": bill.id,
                    "total_amount": charge.total,
                },
                description=(
                    f'Created meter reading for "{customer.name}" period {period} '
                    f"(usage: {usage}m³, bill: Rp{charge.total})"
                ),
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Duplicate reading for customer {customer_id} period {period}")
            raise Conflict(f"Meter reading for period {period} already exists for this customer")
        except Exception:
            self.db.rollback()
            logger.error(f"Meter reading ingestion rolled back for customer {customer_id}", exc_info=True)
            raise

        logger.info(f"Reading #{reading.id} for customer {customer_id} period {period}: "
                    f"usage {usage}, bill #{bill.id} total {charge.total}")
        return self.get_reading(reading.id)

    def get_reading(self, reading_id: int) -> MeterReading:
        """Live reading with customer, bill and items"""
        reading = self._reading_query().filter(
            MeterReading.id == reading_id,
            MeterReading.deleted_at.is_(None)
        ).first()
        if not reading:
            raise NotFound("Meter reading not found")
        return reading

    def get_report(self, period: str) -> Dict[str, Any]:
        """All live readings of a period, ordered by customer number"""
        validate_period(period)
        readings: List[MeterReading] = self._reading_query().join(MeterReading.customer).filter(
            MeterReading.period == period,
            MeterReading.deleted_at.is_(None),
            Customer.deleted_at.is_(None)
        ).order_by(Customer.customer_number).all()
        return {"period": period, "data": readings}

    def remove_reading(self, reading_id: int, actor: Optional[ActorContext] = None) -> Dict[str, Any]:
        """
        Permanently delete a reading with its bill and items

        The customer's balance drops by whatever the bill still had
        outstanding; paid bills leave the balance untouched.
        """
        reading = self.get_reading(reading_id)
        customer = reading.customer
        bill = reading.bill
        outstanding = bill.outstanding if bill else Decimal("0")

        customer_id = reading.customer_id
        customer_name = customer.name if customer else f"customer #{customer_id}"

        try:
            # A force deleted customer has no balance left to adjust
            if customer is not None:
                customer.outstanding_balance = Decimal(customer.outstanding_balance) - outstanding

            AuditService(self.db).log(
                action=AuditAction.DELETE,
                entity_type="meter_readings",
                entity_id=reading.id,
                actor=actor,
                details={
                    "customer_id": customer_id,
                    "customer_name": customer.name if customer else None,
                    "period": reading.period,
                    "usage": reading.usage,
                    "bill_id": bill.id if bill else None,
                    "bill_status": bill.payment_status.value if bill else None,
                    "balance_reduced_by": outstanding,
                },
                description=f'Deleted meter reading #{reading.id} for "{customer_name}" period {reading.period}',
            )
            self.db.delete(reading)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Removal of reading #{reading_id} rolled back", exc_info=True)
            raise

        logger.info(f"Removed reading #{reading_id}, customer {customer_id} balance reduced by {outstanding}")
        return {"message": "Meter reading deleted successfully", "balance_reduced_by": outstanding}
