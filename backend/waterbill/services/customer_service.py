"""
Customer service
CRUD, soft-delete cascade over readings, bills and items, restore,
force delete and balance reconciliation.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from waterbill.exceptions import Conflict, NotFound
from waterbill.models.ontology import (
    Customer, MeterReading, Bill, PaymentStatus, AuditAction, utcnow
)
from waterbill.models.schemas import CustomerCreate, CustomerUpdate
from waterbill.security.context import ActorContext
from waterbill.services.audit_service import AuditService
from waterbill.services.pagination import paginate

logger = logging.getLogger(__name__)


class CustomerService:
    """Customer service"""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, customer_id: int, include_deleted: bool = False) -> Optional[Customer]:
        query = self.db.query(Customer).filter(Customer.id == customer_id)
        if not include_deleted:
            query = query.filter(Customer.deleted_at.is_(None))
        return query.first()

    def _number_taken(self, customer_number: int, exclude_id: Optional[int] = None) -> bool:
        # Soft-deleted customers still hold their number
        query = self.db.query(Customer.id).filter(Customer.customer_number == customer_number)
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        return query.first() is not None

    def _commit(self, operation: str):
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"{operation} rolled back", exc_info=True)
            raise

    def get_customer(self, customer_id: int, include_deleted: bool = False) -> Customer:
        customer = self._find(customer_id, include_deleted)
        if not customer:
            raise NotFound("Customer not found")
        return customer

    def get_customer_detail(self, customer_id: int) -> Dict[str, Any]:
        """Customer with live readings and their bills, newest period first"""
        customer = self.get_customer(customer_id)
        readings = self.db.query(MeterReading).options(
            selectinload(MeterReading.bill).selectinload(Bill.items)
        ).filter(
            MeterReading.customer_id == customer_id,
            MeterReading.deleted_at.is_(None)
        ).order_by(MeterReading.period.desc()).all()
        return {
            "id": customer.id,
            "name": customer.name,
            "customer_number": customer.customer_number,
            "outstanding_balance": customer.outstanding_balance,
            "created_at": customer.created_at,
            "updated_at": customer.updated_at,
            "deleted_at": customer.deleted_at,
            "meter_readings": readings,
        }

    def list_customers(self, page: int = 1, limit: int = 10,
                       include_deleted: bool = False) -> Tuple[List[Customer], Dict[str, int]]:
        """Paginated list ordered by customer number"""
        query = self.db.query(Customer)
        if not include_deleted:
            query = query.filter(Customer.deleted_at.is_(None))
        return paginate(query.order_by(Customer.customer_number), page, limit)

    def create_customer(self, data: CustomerCreate, actor: Optional[ActorContext] = None) -> Customer:
        """Register a customer with a zero balance"""
        if self._number_taken(data.customer_number):
            raise Conflict(f"Customer with number {data.customer_number} already exists")

        customer = Customer(
            name=data.name,
            customer_number=data.customer_number,
            outstanding_balance=Decimal("0"),
        )
        try:
            self.db.add(customer)
            self.db.flush()
            AuditService(self.db).log(
                action=AuditAction.CREATE,
                entity_type="customers",
                entity_id=customer.id,
                actor=actor,
                details={"name": customer.name, "customer_number": customer.customer_number},
                description=f'Created customer "{customer.name}" (number: {customer.customer_number})',
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict(f"Customer with number {data.customer_number} already exists")
        except Exception:
            self.db.rollback()
            logger.error("Customer creation rolled back", exc_info=True)
            raise

        self.db.refresh(customer)
        logger.info(f"Created customer #{customer.id} number {customer.customer_number}")
        return customer

    def update_customer(self, customer_id: int, data: CustomerUpdate,
                        actor: Optional[ActorContext] = None) -> Customer:
        """Change name and/or customer number"""
        customer = self.get_customer(customer_id)
        update_data = data.model_dump(exclude_unset=True, exclude_none=True)

        if "customer_number" in update_data and update_data["customer_number"] != customer.customer_number:
            if self._number_taken(update_data["customer_number"], exclude_id=customer.id):
                raise Conflict(f"Customer with number {update_data['customer_number']} already exists")

        before = {"name": customer.name, "customer_number": customer.customer_number}
        for key, value in update_data.items():
            setattr(customer, key, value)

        AuditService(self.db).log(
            action=AuditAction.UPDATE,
            entity_type="customers",
            entity_id=customer.id,
            actor=actor,
            details={
                "before": before,
                "after": {"name": customer.name, "customer_number": customer.customer_number},
            },
            description=f"Updated customer #{customer.id}",
        )
        self._commit(f"Update of customer #{customer_id}")
        self.db.refresh(customer)
        return customer

    def remove_customer(self, customer_id: int, actor: Optional[ActorContext] = None) -> Dict[str, Any]:
        """
        Soft delete a customer and everything billed to it

        Items, then bill, then reading, then the customer get the same
        deletion timestamp in one transaction.
        """
        customer = self.get_customer(customer_id)
        readings = self.db.query(MeterReading).options(
            selectinload(MeterReading.bill).selectinload(Bill.items)
        ).filter(
            MeterReading.customer_id == customer_id,
            MeterReading.deleted_at.is_(None)
        ).all()

        now = utcnow()
        try:
            for reading in readings:
                bill = reading.bill
                if bill is not None:
                    for item in bill.items:
                        if item.deleted_at is None:
                            item.deleted_at = now
                    if bill.deleted_at is None:
                        bill.deleted_at = now
                reading.deleted_at = now
            customer.deleted_at = now

            AuditService(self.db).log(
                action=AuditAction.DELETE,
                entity_type="customers",
                entity_id=customer.id,
                actor=actor,
                details={
                    "name": customer.name,
                    "customer_number": customer.customer_number,
                    "deleted_readings_count": len(readings),
                    "soft": True,
                },
                description=(
                    f'Deleted customer "{customer.name}" (number: {customer.customer_number}) '
                    f"with {len(readings)} meter reading(s)"
                ),
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Soft delete of customer #{customer_id} rolled back", exc_info=True)
            raise

        logger.info(f"Soft deleted customer #{customer_id} with {len(readings)} readings")
        return {"message": "Customer deleted successfully", "deleted_readings_count": len(readings)}

    def restore_customer(self, customer_id: int, actor: Optional[ActorContext] = None) -> Dict[str, Any]:
        """Undo a soft delete: customer, then readings, then bills, then items"""
        customer = self._find(customer_id, include_deleted=True)
        if not customer or customer.deleted_at is None:
            raise NotFound("Deleted customer not found")

        readings = self.db.query(MeterReading).options(
            selectinload(MeterReading.bill).selectinload(Bill.items)
        ).filter(
            MeterReading.customer_id == customer_id,
            MeterReading.deleted_at.isnot(None)
        ).all()

        try:
            customer.deleted_at = None
            for reading in readings:
                reading.deleted_at = None
                bill = reading.bill
                if bill is not None:
                    if bill.deleted_at is not None:
                        bill.deleted_at = None
                    for item in bill.items:
                        if item.deleted_at is not None:
                            item.deleted_at = None

            AuditService(self.db).log(
                action=AuditAction.UPDATE,
                entity_type="customers",
                entity_id=customer.id,
                actor=actor,
                details={"restored_readings_count": len(readings), "restore": True},
                description=f'Restored customer "{customer.name}" with {len(readings)} meter reading(s)',
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Restore of customer #{customer_id} rolled back", exc_info=True)
            raise

        logger.info(f"Restored customer #{customer_id} with {len(readings)} readings")
        return {"message": "Customer restored successfully", "restored_readings_count": len(readings)}

    def force_delete_customer(self, customer_id: int, actor: Optional[ActorContext] = None) -> Dict[str, Any]:
        """
        Irreversibly delete the customer row only

        Readings, bills and items are not touched; unlike soft delete this
        does not cascade.
        """
        customer = self.get_customer(customer_id, include_deleted=True)
        name, number = customer.name, customer.customer_number

        try:
            AuditService(self.db).log(
                action=AuditAction.DELETE,
                entity_type="customers",
                entity_id=customer.id,
                actor=actor,
                details={"name": name, "customer_number": number, "force": True},
                description=f'Permanently deleted customer "{name}" (number: {number})',
            )
            self.db.delete(customer)
            self.db.commit()
        except IntegrityError:
            # Databases enforcing foreign keys refuse while readings remain
            self.db.rollback()
            raise Conflict(f'Cannot permanently delete customer "{name}" while meter readings reference it')
        except Exception:
            self.db.rollback()
            logger.error(f"Force delete of customer #{customer_id} rolled back", exc_info=True)
            raise

        logger.warning(f"Force deleted customer #{customer_id} ({name})")
        return {"message": "Customer permanently deleted"}

    def reconcile_balance(self, customer_id: int) -> Dict[str, Any]:
        """Compare the stored balance with the sum over unpaid bills"""
        customer = self.get_customer(customer_id)
        bills = self.db.query(Bill).join(Bill.meter_reading).filter(
            MeterReading.customer_id == customer_id,
            MeterReading.deleted_at.is_(None),
            Bill.deleted_at.is_(None),
            Bill.payment_status != PaymentStatus.PAID
        ).all()

        computed = sum(
            (Decimal(b.total_amount) + Decimal(b.penalty) - (Decimal(b.amount_paid) - Decimal(b.change))
             for b in bills),
            Decimal("0")
        )
        recorded = Decimal(customer.outstanding_balance)
        return {
            "customer_id": customer.id,
            "recorded_balance": recorded,
            "computed_balance": computed,
            "consistent": recorded == computed,
        }
