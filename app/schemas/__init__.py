# Pydantic Schemas Package
from .sauda import SaudaCreate, SaudaUpdate, SaudaResponse
from .loading import LoadingCreate, LoadingUpdate, LoadingResponse
from .plus_minus import GenerateRequest
from .recalc_job import RecalcJobResponse

__all__ = [
    "SaudaCreate", "SaudaUpdate", "SaudaResponse",
    "LoadingCreate", "LoadingUpdate", "LoadingResponse",
    "GenerateRequest",
    "RecalcJobResponse",
]
