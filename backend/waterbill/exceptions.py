"""
Billing error taxonomy
Services raise these; the HTTP layer maps each kind to a status code
"""


class BillingError(Exception):
    """Base class for every domain failure"""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(BillingError):
    """Malformed period, negative or regressing meter value, non-positive payment"""
    status_code = 400


class NotFound(BillingError):
    """Referenced customer, reading, bill or setting is absent"""
    status_code = 404


class Conflict(BillingError):
    """Uniqueness violated, e.g. a second reading for the same period"""
    status_code = 409


class AlreadySettled(BillingError):
    """Payment attempted on a bill that is already paid"""
    status_code = 409
