"""Identity validation and error mapping."""

import json

import pytest

from utils.error_handling import (
    InvalidIdentityError,
    ProfileNotFoundError,
    UpstreamTimeoutError,
    to_response,
)
from utils.validators import is_valid_email, normalize_identity, validate_identity


@pytest.mark.parametrize("value", ["jane@acme.com", "J.Doe+crm@mail.acme.co.uk", "  a@b.io "])
def test_valid_emails(value):
    assert is_valid_email(value)


@pytest.mark.parametrize("value", ["", "jane", "jane@acme", "jane doe@acme.com", "@acme.com", "AAMkAGI2="])
def test_invalid_emails(value):
    assert not is_valid_email(value)


def test_validate_identity_normalizes():
    assert validate_identity("  Jane.Doe@ACME.com ") == "jane.doe@acme.com"
    assert normalize_identity("A@X.COM") == "a@x.com"


@pytest.mark.parametrize("value", [None, 42, "not-an-email"])
def test_validate_identity_rejects(value):
    with pytest.raises(InvalidIdentityError) as exc_info:
        validate_identity(value)
    assert exc_info.value.status_code == 422


def test_to_response_maps_status_codes():
    resp = to_response(ProfileNotFoundError("z@y.com"))
    assert resp["statusCode"] == 404
    assert json.loads(resp["body"]) == {
        "message": "Customer profile not found: z@y.com",
        "status": "error",
    }
    assert to_response(UpstreamTimeoutError("calendar", 2.5))["statusCode"] == 504
