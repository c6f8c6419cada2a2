from .ledger import AvailabilityReport, InsufficientItem, StockLedger

__all__ = ["AvailabilityReport", "InsufficientItem", "StockLedger"]
