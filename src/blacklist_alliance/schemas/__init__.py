"""
Blacklist Alliance response schemas.

Pydantic models for the JSON shapes returned by the API.

Schemas:
    results.py  - SingleLookupResult, BulkLookupResult, EmailBulkResult,
                  BatchProgress
"""

from blacklist_alliance.schemas.results import (
    BatchProgress,
    BulkLookupResult,
    EmailBulkResult,
    SingleLookupResult,
)

__all__ = [
    "BatchProgress",
    "BulkLookupResult",
    "EmailBulkResult",
    "SingleLookupResult",
]
