"""
Unit tests for the application error hierarchy.
"""

from core.exceptions import BaseApplicationError, ConflictError, NotFoundError


def test_default_codes():
    assert BaseApplicationError("x").error_code == "APPLICATION_ERROR"
    assert NotFoundError("x").error_code == "NOT_FOUND"
    assert ConflictError("x").error_code == "CONFLICT"


def test_explicit_code_wins():
    error = NotFoundError("Payment missing", error_code="PAYMENT_NOT_FOUND")

    assert error.error_code == "PAYMENT_NOT_FOUND"
    assert str(error) == "[PAYMENT_NOT_FOUND] Payment missing"


def test_to_dict_includes_details_only_when_present():
    assert ConflictError("Stale").to_dict() == {"error": "Stale", "error_code": "CONFLICT"}

    error = ConflictError("Stale", details={"payment_id": "p1"})
    assert error.to_dict()["details"] == {"payment_id": "p1"}
