"""Integration tests for the finance profile and fortnight endpoints."""

from __future__ import annotations

from http import HTTPStatus

import pytest
from flask.testing import FlaskClient

from unitrack.backend.app.auth import AUTH_COOKIE, issue_token

CURRENT_START = "2026-02-15T00:00:00+00:00"
PREVIOUS_START = "2026-02-01T00:00:00+00:00"


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("get", "/api/v1/finance"),
        ("patch", "/api/v1/finance"),
        ("get", "/api/v1/finance/fortnight"),
        ("post", "/api/v1/finance/fortnight"),
        ("get", "/api/v1/finance/summary"),
    ],
)
def test_endpoints_require_authentication(client: FlaskClient, method: str, path: str) -> None:
    response = getattr(client, method)(path, json={})

    assert response.status_code == HTTPStatus.UNAUTHORIZED
    assert response.get_json()["error"] == "unauthorized"


def test_invalid_token_is_rejected(client: FlaskClient) -> None:
    response = client.get(
        "/api/v1/finance", headers={"Authorization": "Bearer not-a-token"}
    )

    assert response.status_code == HTTPStatus.UNAUTHORIZED


def test_cookie_token_is_accepted(client: FlaskClient, user_id: int) -> None:
    client.set_cookie(AUTH_COOKIE, issue_token(user_id, "test-secret"))

    response = client.get("/api/v1/finance")

    assert response.status_code == HTTPStatus.OK
    assert response.get_json()["userId"] == user_id


def test_profile_defaults_on_first_access(client: FlaskClient, auth_headers) -> None:
    response = client.get("/api/v1/finance", headers=auth_headers)

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["savingPercent"] == 70
    assert payload["spendingPercent"] == 10
    assert payload["investingPercent"] == 20
    assert payload["savingsBalance"] == 0
    assert payload["savingsInterestRatePA"] == 0


def test_patch_applies_valid_fields_and_reports_ignored(
    client: FlaskClient, auth_headers
) -> None:
    response = client.patch(
        "/api/v1/finance",
        headers=auth_headers,
        json={"savingsBalance": 1500, "savingPercent": 150, "colour": "blue"},
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["profile"]["savingsBalance"] == 1500
    assert payload["profile"]["savingPercent"] == 70
    assert payload["applied"] == ["savingsBalance"]
    assert sorted(payload["ignored"]) == ["colour", "savingPercent"]

    profile = client.get("/api/v1/finance", headers=auth_headers).get_json()
    assert profile["savingsBalance"] == 1500


def test_patch_without_valid_fields_is_rejected(client: FlaskClient, auth_headers) -> None:
    response = client.patch(
        "/api/v1/finance", headers=auth_headers, json={"savingsBalance": -1}
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    payload = response.get_json()
    assert payload["error"] == "nothing_to_update"
    assert payload["ignored"] == ["savingsBalance"]


def test_patch_rejects_non_object_body(client: FlaskClient, auth_headers) -> None:
    response = client.patch("/api/v1/finance", headers=auth_headers, json=[1, 2])

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.get_json()["error"] == "bad_request"


def test_fortnight_overview_before_any_spending(client: FlaskClient, auth_headers) -> None:
    response = client.get("/api/v1/finance/fortnight", headers=auth_headers)

    assert response.status_code == HTTPStatus.OK
    assert response.get_json() == {
        "currentPeriodStart": CURRENT_START,
        "currentPeriodEnd": "2026-02-28T23:59:59.999000+00:00",
        "previousPeriodStart": PREVIOUS_START,
        "currentAmount": 0,
        "previousAmount": 0,
    }


def test_recording_spending_overwrites_period_amount(
    client: FlaskClient, auth_headers
) -> None:
    first = client.post(
        "/api/v1/finance/fortnight", headers=auth_headers, json={"amount": 120.5}
    )
    second = client.post(
        "/api/v1/finance/fortnight",
        headers=auth_headers,
        json={"amount": 80, "period": "current"},
    )
    client.post(
        "/api/v1/finance/fortnight",
        headers=auth_headers,
        json={"amount": 45, "period": "previous"},
    )

    assert first.status_code == HTTPStatus.OK
    assert first.get_json()["periodStart"] == CURRENT_START
    assert second.get_json()["id"] == first.get_json()["id"]

    overview = client.get("/api/v1/finance/fortnight", headers=auth_headers).get_json()
    assert overview["currentAmount"] == 80
    assert overview["previousAmount"] == 45


@pytest.mark.parametrize(
    "body",
    [
        {"amount": -5},
        {"amount": "12"},
        {"amount": True},
        {},
    ],
)
def test_invalid_spending_is_rejected(client: FlaskClient, auth_headers, body) -> None:
    response = client.post("/api/v1/finance/fortnight", headers=auth_headers, json=body)

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.get_json()["error"] == "invalid_amount"

    overview = client.get("/api/v1/finance/fortnight", headers=auth_headers).get_json()
    assert overview["currentAmount"] == 0


def test_unknown_period_is_a_generic_validation_error(
    client: FlaskClient, auth_headers
) -> None:
    response = client.post(
        "/api/v1/finance/fortnight",
        headers=auth_headers,
        json={"amount": 10, "period": "next"},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    payload = response.get_json()
    assert payload["error"] == "validation_error"
    assert "period" in payload["message"]


def test_users_do_not_see_each_other(client: FlaskClient, auth_headers) -> None:
    client.post("/api/v1/finance/fortnight", headers=auth_headers, json={"amount": 99})
    other = {"Authorization": f"Bearer {issue_token(8, 'test-secret')}"}

    overview = client.get("/api/v1/finance/fortnight", headers=other).get_json()

    assert overview["currentAmount"] == 0


def test_summary_combines_balances_and_holdings(
    client: FlaskClient, auth_headers
) -> None:
    client.patch(
        "/api/v1/finance",
        headers=auth_headers,
        json={
            "savingsBalance": 6000,
            "spendingBalance": 250,
            "investingCashBalance": 750,
            "savingsInterestRatePA": 5,
        },
    )
    client.post(
        "/api/v1/finance/holdings",
        headers=auth_headers,
        json={"ticker": "vas", "exchange": "ASX", "shares": 3, "averagePrice": 90},
    )
    client.post(
        "/api/v1/finance/holdings",
        headers=auth_headers,
        json={"ticker": "GONE", "shares": 1, "averagePrice": 5},
    )

    response = client.get("/api/v1/finance/summary", headers=auth_headers)

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["balancesTotal"] == 7000
    assert payload["stocksValueAud"] == 300
    assert payload["investingTotal"] == 1050
    assert payload["total"] == 7300
    assert payload["monthlyInterest"] == 25
    assert len(payload["holdings"]) == 2
    assert len(payload["unpricedHoldings"]) == 1


def test_patch_ignores_integer_too_large_for_float(client: FlaskClient, auth_headers) -> None:
    body = '{"savingsBalance": 1' + "0" * 400 + ', "spendingBalance": 5}'

    response = client.patch(
        "/api/v1/finance",
        headers=auth_headers,
        data=body,
        content_type="application/json",
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["applied"] == ["spendingBalance"]
    assert payload["ignored"] == ["savingsBalance"]
    assert payload["profile"]["savingsBalance"] == 0
