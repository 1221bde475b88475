"""
ORM models for the leasing and payment core: role-tagged users with their
owner/tenant variant payloads, buildings, units and the payment ledger.

Importing this package ensures model classes are registered with the Base
metadata for Alembic and runtime usage.
"""

from .users import (  # noqa: F401
    Role,
    User,
    Owner,
)
from .property import (  # noqa: F401
    Building,
    Unit,
    UnitType,
    ROOM_CODE_LENGTH,
)
from .tenancy import (  # noqa: F401
    Tenant,
    BackgroundCheckStatus,
)
from .payments import (  # noqa: F401
    Payment,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
)
