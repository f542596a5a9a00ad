"""
Canned responses for dry-run mode.

Dry-run clients never touch the network or the circuit breaker. Each
endpoint answers with data in its real shape: single lookups come back
clean, bulk lookups report every submitted phone as clean, and email bulk
reports every submitted address as good.
"""

from typing import Any, Dict

from blacklist_alliance.executor import Endpoint, OperationRequest
from blacklist_alliance.schemas.results import BulkLookupResult, SingleLookupResult


def get_dry_run_response(request: OperationRequest) -> Any:
    """
    Build the canned response for a request.

    Args:
        request: The request that would have been sent

    Returns:
        Response data matching the endpoint's shape
    """
    body: Dict[str, Any] = request.body or {}

    if request.endpoint == Endpoint.LOOKUP:
        return SingleLookupResult(
            sid="dry-run",
            phone=(request.params or {}).get("phone", "0000000000"),
        ).model_dump()

    if request.endpoint == Endpoint.BULK_LOOKUP:
        phones = list(body.get("phones", []))
        return BulkLookupResult(
            numbers=len(phones),
            count=len(phones),
            phones=phones,
        ).model_dump()

    if request.endpoint == Endpoint.EMAIL_BULK:
        return {"good": list(body.get("emails", []))}

    return {"status": "success", "dryRun": True}
