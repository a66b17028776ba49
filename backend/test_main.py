"""Tests for the HTTP layer over the thermal network core."""

from typing import Any

import pytest
from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


def network() -> dict[str, Any]:
    return {
        "nodes": [
            {"id": "a", "name": "A", "initial_temp": 100, "heat_capacity": 50},
            {"id": "b", "name": "B", "initial_temp": 20, "heat_capacity": 1, "is_fixed": True, "fixed_temp": 20},
        ],
        "edges": [{"id": "ab", "source": "a", "target": "b", "conductance": 5}],
    }


def test_simulate() -> None:
    response = client.post("/thermal/simulate", json={**network(), "settings": {"time_step": 1, "total_time": 5}})

    assert response.status_code == 200
    body = response.json()
    assert body["times"] == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
    assert body["series"][0]["node_id"] == "a"
    assert body["series"][0]["temperatures"][1] == pytest.approx(92.0)


def test_validation_error_is_422() -> None:
    payload = network()
    payload["edges"][0]["target"] = "missing"

    response = client.post("/thermal/simulate", json={**payload, "settings": {"time_step": 1, "total_time": 5}})

    assert response.status_code == 422
    body = response.json()
    assert body["kind"] == "validation"
    assert body["detail"]["constraint"] == "dangling_reference"
    assert "missing" in body["message"]


def test_measurements_are_seeded() -> None:
    payload = {**network(), "settings": {"time_step": 1, "total_time": 10}, "noise_level": 0.02, "seed": 11}

    first = client.post("/thermal/measurements", json=payload).json()
    second = client.post("/thermal/measurements", json=payload).json()

    assert first == second
    assert [m["node_id"] for m in first] == ["a", "b"]
    assert len(first[0]["times"]) == 11


def test_estimate_then_apply() -> None:
    measurements = client.post(
        "/thermal/measurements",
        json={**network(), "settings": {"time_step": 1, "total_time": 30}, "noise_level": 0.0},
    ).json()

    guess = network()
    guess["nodes"][0]["heat_capacity"] = 60
    response = client.post(
        "/thermal/estimate",
        json={
            **guess,
            "settings": {
                "measurement_data": measurements,
                "optimization_settings": {"max_iterations": 200, "tolerance": 1e-8},
            },
        },
    )

    assert response.status_code == 200
    result = response.json()
    assert result["convergence_info"]["converged"] is True
    assert set(result["estimated_heat_capacities"]) == {"a", "b"}

    applied = client.post("/thermal/apply", json={**guess, "result": result}).json()
    assert applied["nodes"][0]["heat_capacity"] == result["estimated_heat_capacities"]["a"]
    assert applied["edges"][0]["conductance"] == result["estimated_conductances"]["ab"]


def test_estimate_without_measurements_is_422() -> None:
    response = client.post("/thermal/estimate", json={**network(), "settings": {"measurement_data": []}})

    assert response.status_code == 422
    assert response.json()["kind"] == "estimation"


def test_heat_flow() -> None:
    result = client.post(
        "/thermal/simulate", json={**network(), "settings": {"time_step": 1, "total_time": 5}}
    ).json()

    response = client.post("/thermal/heat-flow", json={**network(), "result": result, "sample_index": 0})

    assert response.status_code == 200
    snapshot = response.json()
    assert snapshot["flows"][0]["flow_watts"] == pytest.approx(400.0)
    assert snapshot["net_by_node"] == {"a": -400.0, "b": 400.0}


def test_heat_flow_bad_index_is_422() -> None:
    result = client.post(
        "/thermal/simulate", json={**network(), "settings": {"time_step": 1, "total_time": 5}}
    ).json()

    response = client.post("/thermal/heat-flow", json={**network(), "result": result, "sample_index": 99})

    assert response.status_code == 422
    body = response.json()
    assert body["kind"] == "validation"
    assert body["detail"]["constraint"] == "out_of_range"
