"""
Data initialisation script
Creates tables, the default tariff, operator accounts and a few sample
customers with one month of readings.

Default accounts:
  admin       Administrator   (password from DEFAULT_ADMIN_PASSWORD, admin123)
  operator1   Meter Operator  (password operator123)
"""
import sys
sys.path.insert(0, '.')

from decimal import Decimal
from waterbill.database import SessionLocal, init_db
from waterbill.models.ontology import Customer, User, UserRole
from waterbill.models.schemas import CustomerCreate
from waterbill.security.auth import get_password_hash
from waterbill.security.context import ActorContext
from waterbill.services.billing_service import BillingService
from waterbill.services.customer_service import CustomerService
from waterbill.services.meter_reading_service import MeterReadingService
from waterbill.services.settings_service import SettingsService
from waterbill.services.user_service import UserService

SAMPLE_CUSTOMERS = [
    # (customer_number, name, first meter_end)
    (1001, "Budi Santoso", 45),
    (1002, "Siti Aminah", 32),
    (1003, "Agus Wijaya", 58),
    (1004, "Dewi Lestari", 12),
]

SAMPLE_PERIOD = "2025-01"


def init_operators(db) -> dict:
    """Operator account next to the bootstrap admin"""
    stats = {"users": 0}
    if not db.query(User).filter(User.username == "operator1").first():
        db.add(User(
            username="operator1",
            password_hash=get_password_hash("operator123"),
            name="Meter Operator",
            role=UserRole.OPERATOR,
            is_active=True,
        ))
        db.commit()
        stats["users"] = 1
    return stats


def init_sample_data(db) -> dict:
    """Sample customers, one billed reading each, one partial payment. Idempotent."""
    stats = {"customers": 0, "readings": 0, "payments": 0}
    actor = ActorContext(performed_by="init_data")
    customers = CustomerService(db)
    readings = MeterReadingService(db)

    for number, name, meter_end in SAMPLE_CUSTOMERS:
        customer = db.query(Customer).filter(Customer.customer_number == number).first()
        if not customer:
            customer = customers.create_customer(CustomerCreate(name=name, customer_number=number), actor)
            stats["customers"] += 1

        if readings.get_last_reading(customer.id) is None:
            reading = readings.create_reading(customer.id, SAMPLE_PERIOD, meter_end, actor)
            stats["readings"] += 1
            if number == 1001:
                BillingService(db).pay_bill(reading.bill.id, Decimal("40000"), actor=actor)
                stats["payments"] += 1

    return stats


def main():
    print("=" * 50)
    print("WaterBill data initialisation")
    print("=" * 50)

    init_db()
    print("Database tables created")

    db = SessionLocal()
    try:
        print(f"Tariff settings: {SettingsService(db).ensure_defaults()}")
        print(f"Admin account: {UserService(db).ensure_default_admin()}")
        print(f"Operator accounts: {init_operators(db)}")
        print(f"Sample data: {init_sample_data(db)}")

        print("=" * 50)
        print("Done.")
        print("  admin      / admin123")
        print("  operator1  / operator123")
        print("=" * 50)
    finally:
        db.close()


if __name__ == '__main__':
    main()
