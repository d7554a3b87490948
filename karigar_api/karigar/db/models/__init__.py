"""
ORM models for the merchant back office: security, product master data, inventory,
procurement, sales and invoicing, production, catalogues and activity.

Importing this package registers every mapped class with Base.metadata for Alembic
and runtime relationship resolution.
"""

from .security import (  # noqa: F401
    Merchant,
    User,
    Role,
    UserRole,
)
from .master_data import (  # noqa: F401
    ProductConfig,
    ProductConfigMaterial,
)
from .inventory import (  # noqa: F401
    RawMaterial,
    FinishedGood,
    InventoryTag,
    TagAuditLog,
)
from .procurement import (  # noqa: F401
    Supplier,
    ProcurementRequest,
    WhatsAppNotification,
)
from .sales import (  # noqa: F401
    Customer,
    Order,
    OrderItem,
    Invoice,
    InvoiceItem,
)
from .production import (  # noqa: F401
    Worker,
    ManufacturingOrder,
    ManufacturingStep,
)
from .catalogue import (  # noqa: F401
    Catalogue,
    CatalogueItem,
    CatalogueOrder,
)
from .activity import (  # noqa: F401
    ActivityLog,
    NumberSequence,
)
