# Domain services
from waterbill.services.audit_service import AuditService
from waterbill.services.billing_service import BillingService
from waterbill.services.customer_service import CustomerService
from waterbill.services.meter_reading_service import MeterReadingService
from waterbill.services.settings_service import SettingsService
from waterbill.services.user_service import UserService

__all__ = [
    'AuditService', 'BillingService', 'CustomerService',
    'MeterReadingService', 'SettingsService', 'UserService'
]
