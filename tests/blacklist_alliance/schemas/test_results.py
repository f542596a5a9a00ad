"""Tests for response schemas."""

import pytest
from pydantic import ValidationError

from blacklist_alliance.schemas import (
    BatchProgress,
    BulkLookupResult,
    EmailBulkResult,
    SingleLookupResult,
)


class TestSingleLookupResult:
    """Test single lookup schema."""

    def test_defaults_are_clean(self):
        result = SingleLookupResult()

        assert result.message == "Good"
        assert result.code == "none"
        assert result.is_blacklisted is False
        assert result.reasons == []

    def test_blacklisted_reasons(self):
        result = SingleLookupResult.model_validate(
            {
                "sid": "abc",
                "message": "Blacklisted",
                "code": "prelitigation1, federal-dnc",
                "phone": "9999999999",
                "results": 1,
            }
        )

        assert result.is_blacklisted is True
        assert result.reasons == ["prelitigation1", "federal-dnc"]

    def test_empty_code_has_no_reasons(self):
        assert SingleLookupResult(code="").reasons == []
        assert SingleLookupResult(code=None).reasons == []

    def test_unknown_fields_preserved(self):
        result = SingleLookupResult.model_validate({"carrier": {"name": "Verizon"}})

        assert result.model_dump()["carrier"] == {"name": "Verizon"}


class TestBulkLookupResult:
    """Test bulk lookup schema."""

    def test_parses_api_shape(self):
        result = BulkLookupResult.model_validate(
            {
                "status": "success",
                "numbers": 2,
                "count": 2,
                "phones": ["2223334444"],
                "supression": ["9999999999"],
                "wireless": [],
                "reasons": {"9999999999": "prelitigation1"},
                "carrier": {},
            }
        )

        assert result.supression == ["9999999999"]
        assert result.reasons["9999999999"] == "prelitigation1"

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            BulkLookupResult(count=-1)

    def test_null_and_empty_list_fields(self):
        result = BulkLookupResult.model_validate(
            {"status": None, "numbers": None, "wireless": None, "reasons": [], "carrier": None}
        )

        assert result.status == "success"
        assert result.numbers == 0
        assert result.wireless == []
        assert result.reasons == {}
        assert result.carrier == {}

    def test_non_empty_list_for_mapping_rejected(self):
        with pytest.raises(ValidationError):
            BulkLookupResult.model_validate({"reasons": ["dnc"]})


class TestEmailBulkResult:
    def test_defaults(self):
        assert EmailBulkResult().model_dump() == {"good": [], "bad": []}


class TestBatchProgress:
    """Test progress record."""

    def test_fields(self):
        progress = BatchProgress(completed=5000, total=12000, batch=1, total_batches=3)

        assert (progress.completed, progress.batch, progress.total_batches) == (5000, 1, 3)

    def test_frozen(self):
        progress = BatchProgress(completed=1, total=1, batch=1, total_batches=1)

        with pytest.raises(ValidationError):
            progress.completed = 2

    def test_batch_index_is_one_based(self):
        with pytest.raises(ValidationError):
            BatchProgress(completed=0, total=1, batch=0, total_batches=1)
