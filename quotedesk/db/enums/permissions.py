"""Role permission sets."""

from quotedesk.db.enums.auth import Role

# Roles that can create, edit and send quotes
ROLES_CAN_MANAGE_QUOTES = {Role.SALES, Role.ADMIN}

# Roles that can assign orders to users or teams
ROLES_CAN_ASSIGN = {Role.SALES, Role.ADMIN}

# Roles that can delete quotes and view ROT reports
ROLES_CAN_ADMINISTER = {Role.ADMIN}
