"""
Domain objects
Customers, meter readings, bills and their itemized charges, tariff
settings, the append-only audit trail and operator accounts.
Monetary columns are Numeric and surface as Decimal.
"""
from datetime import datetime, UTC
from decimal import Decimal
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text,
    Enum as SQLEnum, Boolean, Numeric, UniqueConstraint
)
from sqlalchemy.orm import relationship
from waterbill.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column"""
    return datetime.now(UTC).replace(tzinfo=None)


# ============== Enums ==============

class PaymentStatus(str, Enum):
    """Bill payment status"""
    PENDING = "pending"      # nothing paid yet
    PARTIAL = "partial"      # some paid, remaining > 0
    PAID = "paid"            # settled, terminal


class BillItemType(str, Enum):
    """Bill line component"""
    ADMIN_FEE = "ADMIN_FEE"
    K1 = "K1"
    K2 = "K2"


class AuditAction(str, Enum):
    """Audit action"""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    PAYMENT = "PAYMENT"


class UserRole(str, Enum):
    """Operator role"""
    ADMIN = "admin"
    OPERATOR = "operator"
    VIEWER = "viewer"


# ============== Billing objects ==============

class Customer(Base):
    """
    Customer object
    outstanding_balance is the running sum still owed over unpaid bills
    """
    __tablename__ = "customers"
    # Never reuse the id of a force deleted customer; its readings still point at it
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    customer_number = Column(Integer, unique=True, nullable=False, index=True)
    outstanding_balance = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)             # soft delete marker

    # Links; force delete must not touch readings
    meter_readings = relationship("MeterReading", back_populates="customer",
                                  passive_deletes="all")


class MeterReading(Base):
    """
    Meter reading object
    One per customer and period; usage = meter_end - meter_start
    """
    __tablename__ = "meter_readings"
    __table_args__ = (
        UniqueConstraint("customer_id", "period", name="uq_meter_reading_customer_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    period = Column(String(7), nullable=False)               # YYYY-MM
    meter_start = Column(Integer, default=0, nullable=False)
    meter_end = Column(Integer, nullable=False)
    usage = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Links
    customer = relationship("Customer", back_populates="meter_readings")
    bill = relationship("Bill", back_populates="meter_reading", uselist=False,
                        cascade="all, delete-orphan")


class Bill(Base):
    """
    Bill object
    Exactly one per meter reading. remaining holds the amount still owed.
    """
    __tablename__ = "bills"

    id = Column(Integer, primary_key=True, index=True)
    meter_reading_id = Column(Integer, ForeignKey("meter_readings.id"), unique=True, nullable=False)
    total_amount = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    penalty = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    amount_paid = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)   # cumulative tendered
    remaining = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    change = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)        # overpayment returned
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Links
    meter_reading = relationship("MeterReading", back_populates="bill")
    items = relationship("BillItem", back_populates="bill", cascade="all, delete-orphan",
                         order_by="BillItem.id")

    @property
    def outstanding(self) -> Decimal:
        """Amount the customer still owes on this bill"""
        if self.payment_status == PaymentStatus.PAID:
            return Decimal("0")
        return Decimal(self.remaining)


class BillItem(Base):
    """
    Bill item object
    Immutable after creation apart from the soft delete marker
    """
    __tablename__ = "bill_items"

    id = Column(Integer, primary_key=True, index=True)
    bill_id = Column(Integer, ForeignKey("bills.id"), nullable=False, index=True)
    type = Column(SQLEnum(BillItemType), nullable=False)
    usage = Column(Integer, default=0, nullable=False)
    rate = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    amount = Column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    # Links
    bill = relationship("Bill", back_populates="items")


# ============== System objects ==============

class Setting(Base):
    """
    Tariff setting
    value is text holding a decimal number
    """
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(50), unique=True, nullable=False, index=True)
    value = Column(String(50), nullable=False)
    description = Column(String(255))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class AuditLog(Base):
    """
    Audit log object
    Append-only record of every mutation
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(SQLEnum(AuditAction), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False, index=True)   # e.g. "bills"
    entity_id = Column(Integer, index=True)
    performed_by = Column(String(100), default="System", nullable=False)
    ip_address = Column(String(50))
    details = Column(Text)                                         # JSON
    description = Column(Text)
    created_at = Column(DateTime, default=utcnow, index=True)


class User(Base):
    """Operator account"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(SQLEnum(UserRole), default=UserRole.OPERATOR, nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
