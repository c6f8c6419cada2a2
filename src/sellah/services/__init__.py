from .bulk import BulkFailure, BulkResult, BulkStatusDriver, StatusUpdate
from .doctor import run_doctor_checks
from .orders import OrderStatusCoordinator
from .reports import export_orders, order_summary

__all__ = [
    "BulkFailure",
    "BulkResult",
    "BulkStatusDriver",
    "OrderStatusCoordinator",
    "StatusUpdate",
    "export_orders",
    "order_summary",
    "run_doctor_checks",
]
