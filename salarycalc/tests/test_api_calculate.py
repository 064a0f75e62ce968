"""
End-to-end API tests for POST /api/salary/calculate and GET /api/salary/regimes/{fy}

Tests the full stack: HTTP request → body validation → business-rule validation
→ salary engine → HTTP response, using the bundled rules datasets.
No live server needed: httpx talks to the ASGI app directly.

Tolerance: ±₹1 on all monetary assertions (consistent with test_tax_engine.py).
"""
from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from salarycalc.engine.tax_engine import SalaryBreakdownEngine
from salarycalc.main import app
from salarycalc.tests.demo_profiles import DEMO_PROFILES


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def client():
    """Async httpx client using ASGI transport — no live server needed."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Test Group 1: successful calculations
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("name", list(DEMO_PROFILES))
async def test_calculate_demo_profiles(client: AsyncClient, name: str) -> None:
    data = DEMO_PROFILES[name]
    expected = data["expected"]

    response = await client.post(
        "/api/salary/calculate",
        json={"profile": data["profile"], "fy": "2025-26"},
    )
    assert response.status_code == 200, (
        f"{name}: Expected 200, got {response.status_code}. Body: {response.text}"
    )

    result = response.json()
    assert result["fy"] == "2025-26"
    assert result["recommended_regime"] == expected["expected_regime"]
    for regime, tax in expected["expected_tax"].items():
        total = result["regimes"][regime]["income_tax"]["total"]
        assert abs(total - tax) <= 1, f"{name}/{regime}: expected ₹{tax:,.0f}, got ₹{total:,.0f}"
    assert abs(result["savings_amount"] - expected["expected_savings"]) <= 1
    assert result["disclaimer"]


@pytest.mark.asyncio
async def test_calculate_response_shape(client: AsyncClient) -> None:
    response = await client.post(
        "/api/salary/calculate",
        json={"profile": DEMO_PROFILES["vikram"]["profile"], "regimes": ["old", "new"]},
    )
    assert response.status_code == 200
    result = response.json()

    assert set(result["regimes"]) == {"old", "new"}
    old = result["regimes"]["old"]
    assert set(old) == {
        "regime", "label", "gross_salary", "taxable_income", "income_tax",
        "professional_tax", "monthly_tds", "take_home", "breakdown",
    }
    assert set(old["breakdown"]["deductions"]) == {"80C", "80D", "80CCD1B", "HRA", "professional_tax"}
    assert result["regimes"]["new"]["breakdown"]["deductions"] == {}
    assert len(old["monthly_tds"]["schedule"]) == 12
    assert result["gross_salary"]["total"] == 3_885_000


@pytest.mark.asyncio
async def test_calculate_previous_financial_year(client: AsyncClient) -> None:
    response = await client.post(
        "/api/salary/calculate",
        json={"profile": {"basic": 900_000}, "fy": "2024-25"},
    )
    assert response.status_code == 200
    assert set(response.json()["regimes"]) == {"old", "new"}


@pytest.mark.asyncio
async def test_list_regimes(client: AsyncClient) -> None:
    response = await client.get("/api/salary/regimes/2025-26")
    assert response.status_code == 200
    body = response.json()
    assert [r["regime"] for r in body["regimes"]] == ["old", "new", "new_post_2025"]
    assert all(r["label"] for r in body["regimes"])


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# ---------------------------------------------------------------------------
# Test Group 2: error envelope
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_missing_basic_returns_validation_error(client: AsyncClient) -> None:
    response = await client.post("/api/salary/calculate", json={"profile": {"hra": 100_000}})
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert {"field": "basic", "issue": "Required field 'basic' is missing"} in error["details"]


@pytest.mark.asyncio
async def test_all_violations_reported_together(client: AsyncClient) -> None:
    response = await client.post(
        "/api/salary/calculate",
        json={"profile": {"employee_pf_percent": 150, "investments": {"80G": 10_000}}},
    )
    assert response.status_code == 422
    fields = {d["field"] for d in response.json()["error"]["details"]}
    assert fields == {"basic", "employee_pf_percent", "investments.80G"}


@pytest.mark.asyncio
async def test_unknown_profile_field_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/api/salary/calculate",
        json={"profile": {"basic": 900_000, "salary_in_dollars": 10}},
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"][0]["field"] == "salary_in_dollars"


@pytest.mark.asyncio
async def test_missing_profile_body_rejected(client: AsyncClient) -> None:
    response = await client.post("/api/salary/calculate", json={"fy": "2025-26"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_unknown_fy_returns_404(client: AsyncClient) -> None:
    response = await client.post(
        "/api/salary/calculate",
        json={"profile": {"basic": 900_000}, "fy": "1999-00"},
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RULES_NOT_FOUND"


@pytest.mark.asyncio
async def test_unknown_regime_returns_422(client: AsyncClient) -> None:
    response = await client.post(
        "/api/salary/calculate",
        json={"profile": {"basic": 900_000}, "fy": "2025-26", "regimes": ["old", "flat_tax"]},
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "UNSUPPORTED_REGIME"
    assert "flat_tax" in error["message"]


@pytest.mark.asyncio
async def test_list_regimes_unknown_fy(client: AsyncClient) -> None:
    response = await client.get("/api/salary/regimes/2099-00")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RULES_NOT_FOUND"


@pytest.mark.asyncio
async def test_form_strings_are_clamped_not_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/api/salary/calculate",
        json={
            "profile": {"basic": "900000", "bonus": "-5000", "investments": {"80C": "-100"}},
            "regimes": ["old"],
        },
    )
    assert response.status_code == 200, response.text
    result = response.json()
    assert result["gross_salary"]["total"] == 900_000
    assert result["regimes"]["old"]["breakdown"]["deductions"]["80C"] == 0


@pytest.mark.asyncio
async def test_unknown_top_level_key_rejected(client: AsyncClient) -> None:
    response = await client.post(
        "/api/salary/calculate",
        json={"profile": {"basic": 900_000}, "currency": "USD"},
    )
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["message"] == "Request validation failed"
    assert error["details"][0]["field"] == "currency"


@pytest.mark.asyncio
async def test_misconfigured_engine_policy_returns_422(
    client: AsyncClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(app.state, "engine", SalaryBreakdownEngine(on_unknown_regime="ignore"), raising=False)
    response = await client.post("/api/salary/calculate", json={"profile": {"basic": 900_000}})
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert "on_unknown_regime" in error["message"]
