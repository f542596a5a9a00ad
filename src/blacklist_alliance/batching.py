"""
Batching and result merging for bulk operations.

Bulk payloads are split into fixed-size batches so each request stays well
under the API's 1MB body limit (5000 phones is roughly 75KB). Partial
results are folded back into one logical response:

- Phone bulk: counters sum, lists concatenate in batch order, mappings union
  (later batch wins on a duplicate key, which cannot happen for a correctly
  partitioned input).
- Email bulk: ``good`` concatenates; ``bad`` is derived from the submitted
  list because the API only reports the good side.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar

from pydantic import ValidationError as PydanticValidationError

from blacklist_alliance.common.exceptions import BlacklistAllianceError, ErrorKind
from blacklist_alliance.schemas.results import BulkLookupResult, EmailBulkResult

T = TypeVar("T")

BATCH_LIMIT = 5000


def batch_items(items: Sequence[T], batch_size: int = BATCH_LIMIT) -> List[List[T]]:
    """
    Split items into contiguous, order-preserving batches.

    Args:
        items: Items to split
        batch_size: Maximum items per batch

    Returns:
        ceil(len(items) / batch_size) lists; all but the last are full

    Raises:
        ValueError: If batch_size is not positive
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]


def _unwrap(result: Any) -> Optional[Dict[str, Any]]:
    """Normalize a partial result to its inner object (API sometimes wraps it in a list)."""
    if isinstance(result, list):
        result = result[0] if result else None
    if not result:
        return None
    if not isinstance(result, dict):
        raise BlacklistAllianceError(
            f"Unexpected response shape: {type(result).__name__}",
            kind=ErrorKind.UPSTREAM,
            response=result,
        )
    return result


def _validate(model: Any, data: Dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise BlacklistAllianceError(
            f"Malformed {model.__name__} response",
            kind=ErrorKind.UPSTREAM,
            response=data,
            cause=e,
        ) from e


def merge_bulk_results(results: Iterable[Any]) -> Dict[str, Any]:
    """
    Merge per-batch phone bulk results into one.

    Args:
        results: Partial results in batch order

    Returns:
        Merged result in the bulk lookup shape
    """
    merged = BulkLookupResult()
    extras: Dict[str, Any] = {}

    for result in results:
        data = _unwrap(result)
        if data is None:
            continue
        partial = _validate(BulkLookupResult, data)

        merged.numbers += partial.numbers
        merged.count += partial.count
        merged.phones.extend(partial.phones)
        merged.supression.extend(partial.supression)
        merged.wireless.extend(partial.wireless)
        merged.reasons.update(partial.reasons)
        merged.carrier.update(partial.carrier)
        if partial.status != "success":
            merged.status = partial.status
        extras.update(partial.model_extra or {})

    output = dict(extras)
    output.update(merged.model_dump())
    return output


def merge_email_results(results: Iterable[Any], submitted: Sequence[str]) -> Dict[str, Any]:
    """
    Merge per-batch email results, deriving ``bad`` from the submitted list.

    Comparison is case-insensitive. ``good`` keeps batch order and is not
    deduplicated.

    Args:
        results: Partial results in batch order
        submitted: Every address submitted across all batches

    Returns:
        Dict with ``good`` and ``bad`` lists
    """
    good: List[str] = []
    for result in results:
        data = _unwrap(result)
        if data is None:
            continue
        good.extend(_validate(EmailBulkResult, data).good)

    good_set = {email.lower() for email in good}
    bad = [email for email in submitted if email.lower() not in good_set]

    return EmailBulkResult(good=good, bad=bad).model_dump()
