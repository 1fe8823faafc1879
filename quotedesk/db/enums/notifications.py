"""Notification-related enums."""

from enum import Enum


class NotificationType(str, Enum):
    """Types of in-app notifications."""

    ORDER_ASSIGNED = "order_assignment"
    ORDER_STATUS_CHANGED = "status_update"
    TEAM_ASSIGNED = "team_assignment"
    SYSTEM = "system"
