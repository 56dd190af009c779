# Domain Models
from waterbill.models.ontology import (
    Customer, MeterReading, Bill, BillItem, Setting, AuditLog, User
)

__all__ = [
    'Customer', 'MeterReading', 'Bill', 'BillItem', 'Setting', 'AuditLog', 'User'
]
