"""
Domain exceptions raised by the ledger services

The API layer maps these to HTTP responses (see app/api/errors.py).
"""


class LedgerError(Exception):
    """Base class for every error raised by the trading ledger."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LedgerValidationError(LedgerError):
    status_code = 400


class DuplicateContractNumber(LedgerError):
    status_code = 400

    def __init__(self, sauda_no: str):
        super().__init__("Sauda number already exists")
        self.sauda_no = sauda_no


class ContractHasFulfillments(LedgerError):
    status_code = 409

    def __init__(self, sauda_id: int, loading_count: int):
        super().__init__(
            f"Sauda {sauda_id} has {loading_count} loading entries; delete them first"
        )
        self.sauda_id = sauda_id
        self.loading_count = loading_count


class RecalculationError(LedgerError):
    """A derived view could not be refreshed; the originating write was rolled back."""
    status_code = 500

    def __init__(self, view: str, key, cause: Exception):
        super().__init__(f"Recalculation of {view} for {key} failed: {cause}")
        self.view = view
        self.key = key
        self.cause = cause


class JobNotFound(LedgerError):
    status_code = 404

    def __init__(self, job_id: int):
        super().__init__(f"Recalculation job {job_id} not found")
        self.job_id = job_id


class JobStateError(LedgerError):
    status_code = 409
