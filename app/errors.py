"""Error taxonomy shared by the route finder, lifecycle manager and stores.

Every error carries a human readable message and the HTTP status it maps to.
"""

from typing import Optional


class CargoError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict:
        return {"error": self.message}


class ValidationError(CargoError):
    """Malformed or missing caller input."""
    status_code = 400


class NotFoundError(CargoError):
    status_code = 404


class InvalidTransitionError(CargoError):
    """Requested status change is not allowed from the current status."""
    status_code = 400

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        super().__init__(message or f"Cannot change status from {current} to {requested}")
        self.current = current
        self.requested = requested


class StoreError(CargoError):
    """Upstream persistence unavailable or rejected the operation."""
    status_code = 500
