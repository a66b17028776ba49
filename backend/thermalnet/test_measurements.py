"""Tests for synthetic measurement generation and starting-guess jitter."""

import numpy as np
import pytest

from thermalnet import (
    SimulationSettings,
    ThermalEdge,
    ThermalNode,
    ValidationError,
    generate_measurements,
    perturb_parameters,
    simulate_thermal_network,
)

SETTINGS = SimulationSettings(time_step=2.0, total_time=30.0)


def network() -> tuple[list[ThermalNode], list[ThermalEdge]]:
    nodes = [
        ThermalNode(id="room", name="Room", initial_temp=35.0, heat_capacity=200.0),
        ThermalNode(id="wall", name="Wall", initial_temp=15.0, heat_capacity=500.0),
        ThermalNode(id="out", name="Outside", initial_temp=0.0, heat_capacity=1.0, is_fixed=True, fixed_temp=-2.0),
    ]
    edges = [
        ThermalEdge(id="rw", source="room", target="wall", conductance=8.0),
        ThermalEdge(id="wo", source="wall", target="out", conductance=5.0),
    ]
    return nodes, edges


def test_zero_noise_reproduces_simulation() -> None:
    nodes, edges = network()
    result = simulate_thermal_network(nodes, edges, SETTINGS)

    measurements = generate_measurements(nodes, edges, SETTINGS, noise_level=0.0)

    assert [m.node_id for m in measurements] == ["room", "wall", "out"]
    for m, series in zip(measurements, result.series):
        assert m.times == result.times
        assert m.temperatures == series.temperatures


def test_noise_is_bounded_by_level() -> None:
    nodes, edges = network()
    result = simulate_thermal_network(nodes, edges, SETTINGS)

    measurements = generate_measurements(nodes, edges, SETTINGS, noise_level=0.05, rng=np.random.default_rng(1))

    for m, series in zip(measurements, result.series):
        clean = series.to_array()
        noisy = np.asarray(m.temperatures)
        assert np.all(np.abs(noisy - clean) <= 0.05 * np.abs(clean) + 1e-12)
        assert not np.array_equal(noisy, clean)


def test_seeded_noise_is_reproducible() -> None:
    nodes, edges = network()

    first = generate_measurements(nodes, edges, SETTINGS, rng=np.random.default_rng(3))
    second = generate_measurements(nodes, edges, SETTINGS, rng=np.random.default_rng(3))

    assert first == second


@pytest.mark.parametrize("noise_level", [-0.1, float("nan")])
def test_invalid_noise_level(noise_level: float) -> None:
    nodes, edges = network()

    with pytest.raises(ValidationError):
        generate_measurements(nodes, edges, SETTINGS, noise_level=noise_level)


def test_invalid_network_propagates() -> None:
    nodes, edges = network()
    edges[0].target = "nowhere"

    with pytest.raises(ValidationError, match="nowhere"):
        generate_measurements(nodes, edges, SETTINGS)


def test_perturbation_within_spread() -> None:
    nodes, edges = network()

    new_nodes, new_edges = perturb_parameters(nodes, edges, spread=0.2, rng=np.random.default_rng(5))

    for before, after in zip(nodes, new_nodes):
        assert 0.8 * before.heat_capacity <= after.heat_capacity <= 1.2 * before.heat_capacity
        assert after.initial_temp == before.initial_temp
        assert after.is_fixed == before.is_fixed
    for before, after in zip(edges, new_edges):
        assert 0.8 * before.conductance <= after.conductance <= 1.2 * before.conductance
    # Originals untouched
    assert nodes[0].heat_capacity == 200.0
    assert edges[0].conductance == 8.0


def test_zero_spread_is_identity() -> None:
    nodes, edges = network()

    new_nodes, new_edges = perturb_parameters(nodes, edges, spread=0.0)

    assert new_nodes == nodes
    assert new_edges == edges


@pytest.mark.parametrize("spread", [-0.1, 1.0, 2.5])
def test_invalid_spread(spread: float) -> None:
    nodes, edges = network()

    with pytest.raises(ValidationError):
        perturb_parameters(nodes, edges, spread=spread)
