"""Tests for sensitivity, scenario and report endpoints."""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _save(client: AsyncClient, model_id: str, name: str, variables: dict, **extra) -> dict:
    resp = await client.post(
        f"/api/v1/models/{model_id}/scenarios",
        json={"scenario_name": name, "variables": variables, **extra},
    )
    assert resp.status_code == 201
    return resp.json()


# ======================================================================
# Sensitivity
# ======================================================================


class TestSensitivity:
    async def test_base_values(self, client: AsyncClient, loaded_model):
        resp = await client.get(f"/api/v1/models/{loaded_model['id']}/sensitivity/base-values")
        assert resp.status_code == 200
        values = resp.json()["base_values"]
        assert values["price_per_credit"] == 20
        assert values["capex"] == 1_000_000

    async def test_overrides_against_base(self, client: AsyncClient, loaded_model):
        resp = await client.post(
            f"/api/v1/models/{loaded_model['id']}/sensitivity",
            json={"overrides": {"price_per_credit": 24}, "metric_keys": ["summary.total_revenue"]},
        )
        assert resp.status_code == 200
        change = resp.json()["changes"]["summary.total_revenue"]
        assert change["change_pct"] == pytest.approx(20.0)

    async def test_sweep(self, client: AsyncClient, loaded_model):
        resp = await client.post(
            f"/api/v1/models/{loaded_model['id']}/sensitivity/sweep",
            json={"variables": [
                {"key": "price_per_credit", "name": "Price", "range": [15, 25], "points": 3},
                {"key": "interest_rate", "points": 3},
            ]},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["spider"]["Price"]) == 3
        assert list(data["tornado"])[0] == "Price"
        assert "equity_npv" in data["base_results"]

    async def test_sweep_rate_limited(self, client: AsyncClient, loaded_model):
        from app.core.rate_limit import sweep_limiter

        body = {"variables": [{"key": "price_per_credit", "points": 2}]}
        url = f"/api/v1/models/{loaded_model['id']}/sensitivity/sweep"
        for _ in range(sweep_limiter.max_requests):
            assert (await client.post(url, json=body)).status_code == 200
        assert (await client.post(url, json=body)).status_code == 429


# ======================================================================
# Templates
# ======================================================================


class TestTemplates:
    async def test_list_templates(self, client: AsyncClient):
        resp = await client.get("/api/v1/scenario-templates")
        assert resp.status_code == 200
        assert {t["key"] for t in resp.json()} >= {"optimistic", "pessimistic", "cost_overrun"}

    async def test_create_from_template(self, client: AsyncClient, loaded_model):
        resp = await client.post(
            f"/api/v1/models/{loaded_model['id']}/scenarios/from-template",
            json={"template": "optimistic", "probability": 25},
        )
        assert resp.status_code == 201
        data = resp.json()
        assert data["scenario_name"] == "Optimistic Growth"
        assert data["variables"]["price_per_credit"] == pytest.approx(24.0)
        assert data["metrics"]["summary"]["total_revenue"] > 0

    async def test_unknown_template(self, client: AsyncClient, loaded_model):
        resp = await client.post(
            f"/api/v1/models/{loaded_model['id']}/scenarios/from-template",
            json={"template": "apocalypse"},
        )
        assert resp.status_code == 404


# ======================================================================
# Saved scenarios
# ======================================================================


class TestScenarios:
    async def test_save_and_get(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        saved = await _save(client, mid, "High price", {"price_per_credit": 30}, probability=40)
        assert saved["metrics"]["compliance"]["overall_pass"] is True

        resp = await client.get(f"/api/v1/models/{mid}/scenarios/{saved['id']}")
        assert resp.status_code == 200
        assert resp.json()["variables"] == {"price_per_credit": 30}

    async def test_metrics_frozen_at_save(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        saved = await _save(client, mid, "Snapshot", {})
        revenue = saved["metrics"]["summary"]["total_revenue"]

        await client.put(f"/api/v1/models/{mid}/inputs", json={"inputs": [
            {"category": "operational_metrics", "input_key": "credits_generated",
             "year": 2024, "input_value": {"value": 1}},
        ]})
        resp = await client.get(f"/api/v1/models/{mid}/scenarios/{saved['id']}")
        assert resp.json()["metrics"]["summary"]["total_revenue"] == pytest.approx(revenue)

    async def test_single_base_case(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        await _save(client, mid, "First", {}, is_base_case=True)
        await _save(client, mid, "Second", {}, is_base_case=True)
        resp = await client.get(f"/api/v1/models/{mid}/scenarios")
        base_cases = [s["scenario_name"] for s in resp.json() if s["is_base_case"]]
        assert base_cases == ["Second"]

    async def test_invalid_variables_rejected(self, client: AsyncClient, loaded_model):
        resp = await client.post(
            f"/api/v1/models/{loaded_model['id']}/scenarios",
            json={"scenario_name": "Bad", "variables": {"nope": 1}},
        )
        assert resp.status_code == 422

    async def test_delete(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        saved = await _save(client, mid, "Temp", {})
        assert (await client.delete(f"/api/v1/models/{mid}/scenarios/{saved['id']}")).status_code == 204
        assert (await client.get(f"/api/v1/models/{mid}/scenarios/{saved['id']}")).status_code == 404

    async def test_trash_restore_and_purge(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        saved = await _save(client, mid, "Temp", {})
        url = f"/api/v1/models/{mid}/scenarios/{saved['id']}"
        await client.delete(url)

        assert (await client.get(f"/api/v1/models/{mid}/scenarios")).json() == []
        trash = (await client.get(f"/api/v1/models/{mid}/scenarios/trash")).json()
        assert [s["id"] for s in trash] == [saved["id"]]

        resp = await client.post(f"{url}/restore")
        assert resp.status_code == 200
        assert resp.json()["metrics"] == saved["metrics"]
        assert (await client.get(url)).status_code == 200

        assert (await client.delete(f"{url}/purge")).status_code == 404
        await client.delete(url)
        assert (await client.delete(f"{url}/purge")).status_code == 204
        assert (await client.get(f"/api/v1/models/{mid}/scenarios/trash")).json() == []

    async def test_restored_base_case_yields_to_live_one(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        old = await _save(client, mid, "Old base", {}, is_base_case=True)
        await client.delete(f"/api/v1/models/{mid}/scenarios/{old['id']}")
        await _save(client, mid, "New base", {}, is_base_case=True)

        resp = await client.post(f"/api/v1/models/{mid}/scenarios/{old['id']}/restore")
        assert resp.json()["is_base_case"] is False
        listed = (await client.get(f"/api/v1/models/{mid}/scenarios")).json()
        assert [s["scenario_name"] for s in listed if s["is_base_case"]] == ["New base"]

    async def test_trashed_scenarios_leave_weighting(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        await _save(client, mid, "Main", {}, probability=100)
        extra = await _save(client, mid, "Extra", {}, probability=50)
        await client.delete(f"/api/v1/models/{mid}/scenarios/{extra['id']}")

        data = (await client.post(f"/api/v1/models/{mid}/scenarios/weighted", json={})).json()
        assert data["valid"] is True
        assert data["scenario_count"] == 1

    async def test_scenario_of_other_model_not_found(self, client: AsyncClient, loaded_model):
        saved = await _save(client, loaded_model["id"], "Mine", {})
        resp = await client.get(f"/api/v1/models/{uuid.uuid4()}/scenarios/{saved['id']}")
        assert resp.status_code == 404


# ======================================================================
# Comparison & weighting
# ======================================================================


class TestComparison:
    async def test_compare_against_base_case(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        await _save(client, mid, "Base", {}, is_base_case=True)
        high = await _save(client, mid, "High price", {"price_per_credit": 24})

        resp = await client.post(
            f"/api/v1/models/{mid}/scenarios/compare",
            json={"scenario_ids": [high["id"]], "metric_keys": ["summary.total_revenue"]},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["base"] == "Base"
        change = data["comparisons"][0]["changes"]["summary.total_revenue"]
        assert change["change_pct"] == pytest.approx(20.0)
        assert data["ranking"][0]["id"] == high["id"]

    async def test_compare_without_base_case_uses_current_inputs(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        await _save(client, mid, "Same", {})
        resp = await client.post(f"/api/v1/models/{mid}/scenarios/compare", json={})
        assert resp.status_code == 200
        data = resp.json()
        assert data["base"] == "Current inputs"
        npv = data["comparisons"][0]["changes"]["returns.equity.npv"]
        assert npv["change"] == pytest.approx(0.0)

    async def test_compare_unknown_scenario(self, client: AsyncClient, loaded_model):
        resp = await client.post(
            f"/api/v1/models/{loaded_model['id']}/scenarios/compare",
            json={"scenario_ids": [str(uuid.uuid4())]},
        )
        assert resp.status_code == 404

    async def test_weighted_stored_probabilities(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        low = await _save(client, mid, "Low", {"price_per_credit": 16}, probability=20)
        mid_s = await _save(client, mid, "Mid", {}, probability=60)
        high = await _save(client, mid, "High", {"price_per_credit": 24}, probability=20)

        resp = await client.post(
            f"/api/v1/models/{mid}/scenarios/weighted",
            json={"metric_keys": ["summary.total_revenue"]},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["valid"] is True
        assert data["scenario_count"] == 3
        revenues = [s["metrics"]["summary"]["total_revenue"] for s in (low, mid_s, high)]
        expected = 0.2 * revenues[0] + 0.6 * revenues[1] + 0.2 * revenues[2]
        assert data["expected"]["summary.total_revenue"] == pytest.approx(expected)
        assert data["expected"]["summary.total_revenue"] == pytest.approx(revenues[1])

    async def test_weighted_rejects_bad_probabilities(self, client: AsyncClient, loaded_model):
        mid = loaded_model["id"]
        a = await _save(client, mid, "A", {})
        b = await _save(client, mid, "B", {})
        resp = await client.post(
            f"/api/v1/models/{mid}/scenarios/weighted",
            json={"probabilities": {a["id"]: 50, b["id"]: 30}},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["valid"] is False
        assert all(v is None for v in data["expected"].values())


# ======================================================================
# Reports
# ======================================================================


class TestReports:
    async def test_csv(self, client: AsyncClient, loaded_model):
        resp = await client.get(f"/api/v1/models/{loaded_model['id']}/report/csv")
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        assert "Mangrove_Restoration" in resp.headers["content-disposition"]
        assert resp.text.startswith("Income Statement")

    async def test_pdf(self, client: AsyncClient, loaded_model):
        await _save(client, loaded_model["id"], "Base", {}, probability=100)
        resp = await client.get(f"/api/v1/models/{loaded_model['id']}/report/pdf")
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert resp.content.startswith(b"%PDF")

    async def test_report_not_found(self, client: AsyncClient):
        resp = await client.get(f"/api/v1/models/{uuid.uuid4()}/report/csv")
        assert resp.status_code == 404
