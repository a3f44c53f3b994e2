"""Tests for failure classification."""

import pytest

from tenantguard.models.enums import FailureClass
from tenantguard.services.diagnostics.classifiers import classify, error_codes, flatten_error


@pytest.mark.parametrize(
    "payload, expected",
    [
        (
            "The organization does not allow collaboration with the domain of the user you are inviting.",
            FailureClass.DOMAIN_COLLABORATION_RESTRICTION,
        ),
        (
            {"error": {"code": "BadRequest", "message": "InvitationsAllowedAndBlockedDomainsPolicy violated"}},
            FailureClass.DOMAIN_COLLABORATION_RESTRICTION,
        ),
        ({"Results": "The phone number is already assigned to another user."}, FailureClass.RESOURCE_ALREADY_ASSIGNED),
        ({"error": {"code": "PhoneNumberAlreadyAssigned"}}, FailureClass.RESOURCE_ALREADY_ASSIGNED),
        ("Phone number type DirectRouting does not match the number.", FailureClass.WRONG_RESOURCE_TYPE),
        ({"error": {"code": "PhoneNumberTypeMismatch", "message": "x"}}, FailureClass.WRONG_RESOURCE_TYPE),
    ],
)
def test_known_classes(payload, expected):
    assert classify(payload) == expected


@pytest.mark.parametrize("payload", [None, "", "Request timed out", {"Results": "Internal server error"}])
def test_unclassified(payload):
    assert classify(payload) is None


def test_flatten_nested_payload():
    text = flatten_error({"Results": ["first", {"detail": "second"}], "status": 400})
    assert "first" in text
    assert "second" in text
    assert "400" in text


def test_error_codes_found_at_any_depth():
    assert error_codes({"error": {"code": "A", "inner": [{"Code": "B"}]}}) == {"A", "B"}
