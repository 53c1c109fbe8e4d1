from .base import IdMixin, TimestampMixin
from .master import Item, ExPlant, Party, Broker
from .trade import TradeContract, TradeType
from .loading import FulfillmentEvent
from .stock import StockPosition
from .plus_minus import PlusMinusSnapshot
from .recalc_job import RecalcJob, RecalcJobKind, RecalcJobStatus
from .audit import AuditLog

__all__ = [
    # Base
    "IdMixin", "TimestampMixin",
    # Master
    "Item", "ExPlant", "Party", "Broker",
    # Ledgers
    "TradeContract", "TradeType", "FulfillmentEvent",
    # Derived views
    "StockPosition", "PlusMinusSnapshot",
    # Maintenance
    "RecalcJob", "RecalcJobKind", "RecalcJobStatus",
    # Audit
    "AuditLog",
]
