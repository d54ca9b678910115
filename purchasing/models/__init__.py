"""Central model registry. Import all models so Alembic autodiscover works."""

from purchasing.database import Base  # noqa: F401

from purchasing.models.purchase_request import (  # noqa: F401
    PendingAction,
    PurchaseRequest,
    PurchaseRequestHistory,
)
from purchasing.models.request_setting import RequestSetting  # noqa: F401
