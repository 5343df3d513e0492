"""Test utilities for asserting API responses and message codes."""

from typing import Any

from httpx import Response

from src.api.core.exceptions.base import PracticeAPIException
from src.api.core.messages import MessageCode


def assert_success_response(
    response: Response,
    expected_message_code: MessageCode = MessageCode.SUCCESS,
    expected_status: int = 200,
    data_assertions: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Assert that response is successful with expected message code.

    ``data_assertions`` keys may use dots for nested fields ("speakerNames.Speaker1").
    Returns the response ``data`` for further assertions.
    """
    assert response.status_code == expected_status, (
        f"Expected status {expected_status}, got {response.status_code}. "
        f"Response: {response.text}"
    )

    json_data = response.json()
    assert json_data.get("message_code") == expected_message_code.value, (
        f"Expected message_code {expected_message_code.value}, "
        f"got {json_data.get('message_code')}"
    )
    assert "message" in json_data, "Success response should have message"

    data = json_data.get("data")
    for field, expected_value in (data_assertions or {}).items():
        current = data
        for part in field.split("."):
            current = current[part]
        assert current == expected_value, (
            f"Expected {field} to be {expected_value}, got {current}"
        )

    return data


def assert_error_response(
    response: Response,
    expected_message_code: MessageCode,
    expected_status: int,
    expected_message: str | None = None,
) -> dict[str, Any]:
    """Assert that response is an error body ``{"code", "error", "details"}``."""
    assert response.status_code == expected_status, (
        f"Expected status {expected_status}, got {response.status_code}. "
        f"Response: {response.text}"
    )

    json_data = response.json()
    assert json_data.get("code") == expected_message_code.value, (
        f"Expected code {expected_message_code.value}, got {json_data.get('code')}"
    )
    assert "error" in json_data, "Error response should have error message"

    if expected_message:
        assert json_data.get("error") == expected_message, (
            f"Expected error '{expected_message}', got '{json_data.get('error')}'"
        )

    return json_data


def assert_validation_error(response: Response, field: str | None = None) -> dict[str, Any]:
    """Assert a 422 validation error, optionally naming the offending field."""
    json_data = assert_error_response(response, MessageCode.VALIDATION_ERROR, 422)

    if field:
        validation_errors = json_data.get("details", {}).get("validation_errors", [])
        assert any(
            field in [str(part) for part in err.get("loc", [])] for err in validation_errors
        ), f"Expected validation error for field '{field}', got {validation_errors}"

    return json_data


def assert_authentication_error(
    response: Response, expected_message_code: MessageCode = MessageCode.AUTH_REQUIRED
) -> dict[str, Any]:
    return assert_error_response(response, expected_message_code, 401)


def assert_practice_exception(
    exception: PracticeAPIException,
    expected_message_code: MessageCode,
    expected_status: int | None = None,
) -> None:
    """Assert that a PracticeAPIException has expected properties."""
    assert exception.message_code == expected_message_code, (
        f"Expected message_code {expected_message_code}, "
        f"got {exception.message_code}"
    )

    if expected_status:
        assert exception.status_code == expected_status, (
            f"Expected status_code {expected_status}, got {exception.status_code}"
        )
