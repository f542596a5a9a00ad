"""
Response schemas for the Blacklist Alliance API.

Pydantic models describing the JSON shapes returned by the lookup endpoints,
plus the progress record reported during bulk operations. Unknown fields
returned by the API are preserved (extra="allow").
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SingleLookupResult(BaseModel):
    """Schema for /lookup and standard Lookup responses.

    Attributes:
        sid: Session ID
        status: "success" or an error status
        message: "Good" for clean numbers, "Blacklisted" for flagged ones
        code: "none" or comma-separated blacklist reason codes
        phone: Phone number looked up
        results: 0 for clean, 1 for blacklisted
        wireless: 0 for landline, 1 for wireless

    Example:
        >>> result = SingleLookupResult.model_validate(
        ...     {"message": "Blacklisted", "code": "prelitigation1,federal-dnc"}
        ... )
        >>> result.reasons
        ['prelitigation1', 'federal-dnc']
    """

    model_config = ConfigDict(extra="allow")

    sid: Any = ""
    status: str = "success"
    message: Optional[str] = "Good"
    code: Optional[str] = "none"
    offset: int = 0
    wireless: int = 0
    phone: Any = ""
    results: int = 0
    time: float = 0
    scrubs: bool = True

    @property
    def is_blacklisted(self) -> bool:
        return self.message == "Blacklisted"

    @property
    def reasons(self) -> List[str]:
        """Blacklist reason codes; empty for clean numbers."""
        if not self.code or self.code == "none":
            return []
        return [r.strip() for r in self.code.split(",") if r.strip()]


class BulkLookupResult(BaseModel):
    """Schema for /bulklookup responses (phone bulk shape).

    Attributes:
        numbers: Total numbers submitted
        count: Numbers processed
        phones: Clean (not blacklisted) phone numbers
        supression: Blacklisted phone numbers (API spelling)
        wireless: Wireless numbers
        reasons: Blacklisted phone -> reason codes
        carrier: Phone -> carrier info
    """

    model_config = ConfigDict(extra="allow")

    status: str = "success"
    numbers: int = Field(default=0, ge=0)
    count: int = Field(default=0, ge=0)
    phones: List[Any] = Field(default_factory=list)
    supression: List[Any] = Field(default_factory=list)
    wireless: List[Any] = Field(default_factory=list)
    reasons: Dict[str, Any] = Field(default_factory=dict)
    carrier: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v: Any) -> Any:
        return "success" if v is None else v

    @field_validator("numbers", "count", mode="before")
    @classmethod
    def default_counters(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("phones", "supression", "wireless", mode="before")
    @classmethod
    def default_lists(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("reasons", "carrier", mode="before")
    @classmethod
    def default_mappings(cls, v: Any) -> Any:
        """Clean batches come back with null or [] instead of an empty object."""
        if v is None or v == []:
            return {}
        return v


class EmailBulkResult(BaseModel):
    """Schema for /emailbulk results.

    The API only reports ``good``; ``bad`` is derived by the client as the
    submitted addresses missing from ``good``.
    """

    model_config = ConfigDict(extra="allow")

    good: List[str] = Field(default_factory=list)
    bad: List[str] = Field(default_factory=list)

    @field_validator("good", "bad", mode="before")
    @classmethod
    def default_lists(cls, v: Any) -> Any:
        return [] if v is None else v


class BatchProgress(BaseModel):
    """Progress reported after each bulk batch completes.

    Attributes:
        completed: Items submitted so far (cumulative)
        total: Items in the whole operation
        batch: 1-based index of the batch just completed
        total_batches: Number of batches in the operation
    """

    model_config = ConfigDict(frozen=True)

    completed: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    batch: int = Field(..., ge=1)
    total_batches: int = Field(..., ge=1)
