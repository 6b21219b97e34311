"""Base exception for billing and stock ledger errors."""
from typing import Dict, Optional


class BillingError(Exception):
    """Base for every error raised by the billing core."""
    error_code = "BILLING_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict] = None):
        self.message = message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict:
        return {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class RecordNotFoundError(BillingError):
    """A record looked up by id does not exist."""
    error_code = "NOT_FOUND"
