"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    User roles with increasing privilege levels.

    - WORKER: Field staff (sees and updates assigned orders)
    - SALES: Creates and sends quotes, manages orders
    - ADMIN: Business admin (assignment, reporting, deletes)
    """

    WORKER = "worker"
    SALES = "sales"
    ADMIN = "admin"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_
