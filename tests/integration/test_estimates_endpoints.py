"""Integration tests for pay and allocation estimates."""

from __future__ import annotations

from http import HTTPStatus

from flask.testing import FlaskClient


def test_tax_tables_are_listed_without_authentication(client: FlaskClient) -> None:
    response = client.get("/api/v1/finance/tax-tables")

    assert response.status_code == HTTPStatus.OK
    assert response.get_json() == {"tables": ["2024-25", "2025-26"], "default": "2025-26"}


def test_tax_table_detail(client: FlaskClient) -> None:
    response = client.get("/api/v1/finance/tax-tables/2025-26")

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert [bracket["over"] for bracket in payload["brackets"]] == [
        0,
        18200,
        45000,
        135000,
        190000,
    ]
    assert payload["brackets"][2]["rateLabel"] == "30%"
    assert payload["medicareLevy"]["phaseInUpperThreshold"] == 34027.5


def test_unknown_tax_table_returns_not_found(client: FlaskClient) -> None:
    response = client.get("/api/v1/finance/tax-tables/1999-00")

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.get_json()["error"] == "not_found"


def test_pay_estimate(client: FlaskClient, auth_headers) -> None:
    response = client.post(
        "/api/v1/finance/estimates/pay",
        headers=auth_headers,
        json={"hours": 20, "hourlyWage": 25},
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["gross"] == 500
    assert payload["tax"] == 0
    assert payload["net"] == 500
    assert payload["table"] == "2025-26"


def test_pay_estimate_above_tax_free_threshold(client: FlaskClient, auth_headers) -> None:
    # 1,730.77 a fortnight annualises to 45,000.
    response = client.post(
        "/api/v1/finance/estimates/pay",
        headers=auth_headers,
        json={
            "hours": 1,
            "hourly_wage": 45000 / 26,
            "applyLowIncomeReduction": False,
            "table": "2024-25",
        },
    )

    payload = response.get_json()
    assert payload["income_tax"] == round(4288 / 26, 2)
    assert payload["medicare_levy"] == round(900 / 26, 2)
    assert payload["table"] == "2024-25"


def test_pay_estimate_rejects_negative_hours(client: FlaskClient, auth_headers) -> None:
    response = client.post(
        "/api/v1/finance/estimates/pay",
        headers=auth_headers,
        json={"hours": -1, "hourlyWage": 30},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.get_json()["error"] == "validation_error"


def test_allocation_uses_profile_and_previous_spending(
    client: FlaskClient, auth_headers
) -> None:
    client.post(
        "/api/v1/finance/fortnight",
        headers=auth_headers,
        json={"amount": 50, "period": "previous"},
    )

    response = client.post(
        "/api/v1/finance/estimates/allocation",
        headers=auth_headers,
        json={"paycheck": 1000},
    )

    assert response.status_code == HTTPStatus.OK
    payload = response.get_json()
    assert payload["toSaving"] == 750
    assert payload["toSpending"] == 50
    assert payload["toInvesting"] == 200
    assert payload["previousPeriodOverspend"] == 50
    assert payload["percentages"] == {"saving": 70, "spending": 10, "investing": 20}


def test_allocation_with_explicit_values(client: FlaskClient, auth_headers) -> None:
    response = client.post(
        "/api/v1/finance/estimates/allocation",
        headers=auth_headers,
        json={
            "paycheck": 1000,
            "previousPeriodOverspend": 200,
            "savingPercent": 60,
            "spendingPercent": 20,
        },
    )

    payload = response.get_json()
    assert payload["toSaving"] == 800
    assert payload["toSpending"] == 0
    assert payload["toInvesting"] == 200


def test_strict_allocation_rejects_bad_split(client: FlaskClient, auth_headers) -> None:
    response = client.post(
        "/api/v1/finance/estimates/allocation",
        headers=auth_headers,
        json={"paycheck": 1000, "savingPercent": 90, "strict": True},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.get_json()["error"] == "validation_error"
