# API Routers
from waterbill.routers import auth, customers, meter_readings, bills, settings, audit_logs

__all__ = ['auth', 'customers', 'meter_readings', 'bills', 'settings', 'audit_logs']
