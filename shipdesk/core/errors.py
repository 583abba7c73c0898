"""ShipDesk — Business error taxonomy.

Every error carries a stable snake_case ``code`` that is returned to API
clients verbatim, and the HTTP status the route layer should map it to.
Input errors subclass ValueError so callers that already guard service
calls with ``except ValueError`` keep working.
"""
from typing import Any


class ShipDeskError(Exception):
    """Base class for errors that are reportable business outcomes."""

    code = "shipdesk_error"
    status_code = 400

    def __init__(self, message: str | None = None, **context: Any):
        self.message = message or self.code
        self.context = context
        super().__init__(self.message)


class AwbRequiredError(ShipDeskError, ValueError):
    code = "awb_required"


class AwbPoolTooLargeError(ShipDeskError, ValueError):
    code = "awb_pool_too_large"

    def __init__(self, count: int, limit: int):
        super().__init__(f"AWB pool upload has {count} entries; limit is {limit}", count=count, limit=limit)


class AwbUnavailableError(ShipDeskError):
    """The category's pool has no unassigned AWB left. Expected, not a fault."""

    code = "awb_unavailable"
    status_code = 409

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"No AWBs available for category {category}", category=category)


class InvalidShipmentStatusError(ShipDeskError, ValueError):
    code = "invalid_shipment_status"

    def __init__(self, raw_status: Any):
        super().__init__(f"Invalid shipment status: {raw_status!r}", raw_status=str(raw_status or ""))


class OrderNotFoundError(ShipDeskError):
    code = "order_not_found"
    status_code = 404

    def __init__(self, doc_id: str):
        super().__init__(f"Order {doc_id} not found", doc_id=doc_id)


class OrderKeysLimitError(ShipDeskError, ValueError):
    code = "order_keys_limit_exceeded"


class CsvEmptyError(ShipDeskError, ValueError):
    code = "csv_empty"


class CsvTooLargeError(ShipDeskError, ValueError):
    code = "csv_too_large"

    def __init__(self, count: int, limit: int):
        super().__init__(f"{count} rows submitted; limit is {limit}", count=count, limit=limit)


class JobNotFoundError(ShipDeskError):
    code = "job_not_found"
    status_code = 404


class TransactionConflictError(ShipDeskError):
    """A transaction kept conflicting with concurrent writers until the retry budget ran out."""

    code = "transaction_conflict"
    status_code = 503
