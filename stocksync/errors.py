"""Exception hierarchy for the stock pipeline."""


class StockSyncError(Exception):
    """Base class for all stocksync errors."""


class StockValidationError(StockSyncError):
    """Input rejected before any store call was made."""


class StoreError(StockSyncError):
    """A store call failed. `code` carries the backend error code when known (e.g. "23505")."""

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.code = code


class SubjectNotFoundError(StoreError):
    """The product or variation referenced by a stock operation does not exist."""

    def __init__(self, message: str):
        super().__init__(message, code="not_found")


class LocationNotFoundError(StoreError):
    """The inventory location referenced by a stock operation does not exist."""

    def __init__(self, message: str):
        super().__init__(message, code="not_found")


class AccessDeniedError(StoreError):
    """The caller is not authenticated or does not own the item (backend code 42501)."""

    def __init__(self, message: str):
        super().__init__(message, code="forbidden")


class SnapshotLoadError(StockSyncError):
    """Loading the inventory snapshot failed; the previous snapshot stays in place."""


class CsvFormatError(StockSyncError):
    """The uploaded CSV cannot be processed at all (as opposed to a single bad row)."""


class VariantNameError(StockSyncError):
    """A variant name segment could not be parsed (strict mode only)."""
