"""
errors.py — Typed exceptions for the sync / ledger engine.

Every error carries a machine-readable ``code`` so routers and callers
catch by type and report by code, never by parsing message text.

    StockLedgerError
    +-- SourceUnavailable        external source unreachable / timed out
    +-- SyncAlreadyRunning       another run is in progress for the source
    +-- TransactionFailure       a store write batch could not be committed
    +-- ImmutableRecordError     attempt to rewrite a ledger row
    +-- PreconditionViolation    per-key business rule failure
        +-- ItemNotFound
        +-- AlreadyShipped
        +-- AlreadyAtLocation
        +-- InvalidTransition
        +-- LocationNotFound

Rows missing the mandatory key are not an exception: they are filtered at
the RowSource boundary and counted.
"""


class StockLedgerError(Exception):
    code: str = "STOCKLEDGER_ERROR"


class SourceUnavailable(StockLedgerError):
    """Network, permission or timeout failure reaching an external row source."""

    code = "SOURCE_UNAVAILABLE"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Source {source!r} unavailable: {reason}")


class SyncAlreadyRunning(StockLedgerError):
    code = "SYNC_ALREADY_RUNNING"

    def __init__(self, source: str, run_id):
        self.source = source
        self.run_id = run_id
        super().__init__(f"Sync already in progress for {source!r} (run {run_id})")


class TransactionFailure(StockLedgerError):
    code = "TRANSACTION_FAILURE"

    def __init__(self, message: str, batch_index: int | None = None):
        self.batch_index = batch_index
        super().__init__(message)


class ImmutableRecordError(StockLedgerError):
    code = "IMMUTABLE_RECORD"

    def __init__(self, entity_type: str, entity_id, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"{entity_type} {entity_id} is immutable: {reason}")


class PreconditionViolation(StockLedgerError):
    """Expected business-rule failure for a single key. Reported, never fatal."""

    code = "PRECONDITION_VIOLATION"

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(message)


class ItemNotFound(PreconditionViolation):
    code = "ITEM_NOT_FOUND"

    def __init__(self, key: str):
        super().__init__(key, f"Item {key} not found")


class AlreadyShipped(PreconditionViolation):
    code = "ALREADY_SHIPPED"

    def __init__(self, key: str):
        super().__init__(key, f"Item {key} is already shipped")


class AlreadyAtLocation(PreconditionViolation):
    code = "ALREADY_AT_LOCATION"

    def __init__(self, key: str):
        super().__init__(key, f"Item {key} is already at target location")


class InvalidTransition(PreconditionViolation):
    code = "INVALID_TRANSITION"

    def __init__(self, key: str, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(key, f"Item {key} cannot go from {from_status} to {to_status}")


class LocationNotFound(PreconditionViolation):
    code = "LOCATION_NOT_FOUND"

    def __init__(self, key: str, location_id):
        self.location_id = location_id
        super().__init__(key, f"Location {location_id} not found")
