"""
Shared enums and constants used across the application.
"""

from enum import Enum


class DelistedPolicy(str, Enum):
    """How products from the out-of-stock feed are handled remotely"""
    ZERO_STOCK = "zero_stock"   # keep the product, converge stock to zero
    DELETE = "delete"           # remove the product record entirely

    @classmethod
    def from_value(cls, value) -> "DelistedPolicy":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower().replace("-", "_")
        # Older deployments expose a boolean delete switch
        if normalized in {"true", "1", "yes"}:
            return cls.DELETE
        if normalized in {"", "false", "0", "no"}:
            return cls.ZERO_STOCK
        return cls(normalized)


class MutationKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"

    @property
    def past_tense(self) -> str:
        return f"{self.value}d"
