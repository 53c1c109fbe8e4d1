# Services Package
from .sauda_service import SaudaService
from .loading_service import LoadingService
from .pending_service import PendingQuantityService
from .stock_service import StockService
from .plus_minus_service import PlusMinusService
from .party_breakdown_service import PartyBreakdownService
from .recalc_dispatcher import RecalcDispatcher

__all__ = [
    "SaudaService",
    "LoadingService",
    "PendingQuantityService",
    "StockService",
    "PlusMinusService",
    "PartyBreakdownService",
    "RecalcDispatcher",
]
