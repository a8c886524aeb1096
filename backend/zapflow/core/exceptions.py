"""
Domain exceptions
"""
from typing import Optional


class ZapflowError(Exception):
    """Base class for all zapflow errors"""


class FlowNotFoundError(ZapflowError):
    """Raised when a flow id does not exist in storage"""

    def __init__(self, flow_id: str):
        self.flow_id = flow_id
        super().__init__(f"Fluxo com ID {flow_id} não encontrado")


class ProductNotFoundError(ZapflowError):
    """Raised when no provider knows a product id"""

    def __init__(self, product_id: str, reason: Optional[str] = None):
        self.product_id = product_id
        self.reason = reason
        message = f"Product with ID {product_id} not found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StorageNotConfiguredError(ZapflowError):
    """Raised when flow storage is used without Supabase credentials"""

    def __init__(self):
        super().__init__("Supabase is not configured (SUPABASE_URL / SUPABASE_KEY)")


class InvalidTriggerPatternError(ZapflowError, ValueError):
    """Raised when a trigger regular expression does not compile"""

    def __init__(self, pattern: str, reason: str):
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid trigger pattern '{pattern}': {reason}")
