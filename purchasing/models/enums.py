from enum import Enum


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ORDERED = "ordered"
    RECEIVED = "received"
    RECEIVED_IN_WAREHOUSE = "received-in-warehouse"
    CANCELED = "canceled"


class AdministrativeAction(str, Enum):
    NONE = "none"
    UNAPPROVAL_REQUEST = "unapproval-request"
    CANCELLATION_REQUEST = "cancellation-request"


class RequestPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PurchaseType(str, Enum):
    SINGLE_SUPPLIER = "single-supplier"
    MULTI_SUPPLIER = "multi-supplier"
