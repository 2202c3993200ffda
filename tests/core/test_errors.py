"""Tests for error types and codes."""

import pytest

from blastradius.core.errors import (
    BlastRadiusError,
    ConfigError,
    ErrorCode,
    IngestionError,
    InterchangeError,
    InternalError,
)


class TestErrorCode:
    """Error code value tests."""

    @pytest.mark.parametrize(
        ("code", "expected_range"),
        [
            (ErrorCode.CONFIG_PARSE_ERROR, 2000),
            (ErrorCode.CONFIG_INVALID_VALUE, 2000),
            (ErrorCode.INGESTION_WORKER_FAILED, 3000),
            (ErrorCode.INGESTION_WORKER_TIMEOUT, 3000),
            (ErrorCode.INTERCHANGE_CORRUPT_TABLE, 4000),
            (ErrorCode.INTERNAL_INVALID_TRANSITION, 9000),
        ],
    )
    def test_given_error_code_when_checked_then_in_correct_range(
        self, code: ErrorCode, expected_range: int
    ) -> None:
        """Error codes fall within their designated numeric range."""
        # When
        value = code.value

        # Then
        assert expected_range <= value < expected_range + 1000


class TestBlastRadiusError:
    """Base error behavior tests."""

    def test_given_error_when_to_dict_then_serializes_all_fields(self) -> None:
        """Error serializes to dict with all required fields."""
        # Given
        error = BlastRadiusError(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message="Test message",
            retryable=True,
            details={"key": "value"},
        )

        # When
        result = error.to_dict()

        # Then
        assert result == {
            "code": 2001,
            "error": "CONFIG_PARSE_ERROR",
            "message": "Test message",
            "retryable": True,
            "details": {"key": "value"},
        }

    def test_given_error_when_str_then_human_readable(self) -> None:
        """Error string representation is human readable."""
        # Given
        error = BlastRadiusError(code=ErrorCode.INTERNAL_ERROR, message="Something broke")

        # When
        result = str(error)

        # Then
        assert result == "[9001] INTERNAL_ERROR: Something broke"

    def test_given_subclass_when_raised_then_caught_as_base(self) -> None:
        """Every domain error is catchable as BlastRadiusError."""
        with pytest.raises(BlastRadiusError) as exc_info:
            raise IngestionError.source_not_found("/missing")

        assert exc_info.value.error_name == "INGESTION_SOURCE_NOT_FOUND"


class TestConfigError:
    """ConfigError factory method tests."""

    @pytest.mark.parametrize(
        ("factory", "kwargs", "expected_code"),
        [
            ("parse_error", {"path": "/foo", "reason": "bad yaml"}, ErrorCode.CONFIG_PARSE_ERROR),
            (
                "invalid_value",
                {"field": "ingestion.max_workers", "value": 0, "reason": "must be >= 1"},
                ErrorCode.CONFIG_INVALID_VALUE,
            ),
        ],
    )
    def test_given_factory_when_called_then_correct_code(
        self, factory: str, kwargs: dict[str, object], expected_code: ErrorCode
    ) -> None:
        """Factory methods produce errors with correct error codes."""
        # When
        error = getattr(ConfigError, factory)(**kwargs)

        # Then
        assert error.code == expected_code

    def test_given_invalid_value_when_created_then_value_stringified(self) -> None:
        error = ConfigError.invalid_value("ingestion.max_workers", 0, "must be >= 1")

        assert error.details == {
            "field": "ingestion.max_workers",
            "value": "0",
            "reason": "must be >= 1",
        }


class TestIngestionError:
    """IngestionError factory method tests."""

    @pytest.mark.parametrize(
        ("error", "expected_code", "detail_key"),
        [
            (IngestionError.worker_failed(2, "boom"), ErrorCode.INGESTION_WORKER_FAILED, "worker"),
            (
                IngestionError.write_failed("a_test.go", "rejected"),
                ErrorCode.INGESTION_WRITE_FAILED,
                "path",
            ),
            (IngestionError.worker_timeout(5.0, 3), ErrorCode.INGESTION_WORKER_TIMEOUT, "pending"),
            (IngestionError.source_not_found("/x"), ErrorCode.INGESTION_SOURCE_NOT_FOUND, "path"),
        ],
    )
    def test_given_factory_when_called_then_code_and_details(
        self, error: IngestionError, expected_code: ErrorCode, detail_key: str
    ) -> None:
        assert error.code == expected_code
        assert detail_key in error.details
        assert error.retryable is False


class TestInterchangeError:
    def test_given_integrity_violation_when_created_then_counts_issues(self) -> None:
        # Given
        issues = ["fk_violation:files:1:service_id -> 99", "index_drift:files:by_path"]

        # When
        error = InterchangeError.integrity_violation(issues)

        # Then
        assert error.code == ErrorCode.INTERCHANGE_INTEGRITY_VIOLATION
        assert "2 issue(s)" in error.message
        assert error.details["issues"] == issues

    def test_given_corrupt_table_when_created_then_row_in_details(self) -> None:
        error = InterchangeError.corrupt_table("structs", 3, "bad int")

        assert error.details == {"table": "structs", "row": 3, "reason": "bad int"}


class TestInternalError:
    """InternalError tests."""

    def test_given_unexpected_error_when_created_then_includes_extras(self) -> None:
        """Unexpected error captures arbitrary extra details."""
        # Given
        extras = {"foo": "bar", "count": 42}

        # When
        error = InternalError.unexpected("boom", **extras)

        # Then
        assert error.details == extras
        assert error.code == ErrorCode.INTERNAL_ERROR

    def test_given_invalid_transition_when_created_then_names_both_tags(self) -> None:
        error = InternalError.invalid_transition(7, "SELF_CONTAINED", "UNRESOLVED")

        assert error.details == {"row_id": 7, "current": "SELF_CONTAINED", "target": "UNRESOLVED"}
        assert "SELF_CONTAINED -> UNRESOLVED" in error.message
