"""Synthetic measurement generation for estimator testing.

Runs the solver with known parameters and adds bounded relative noise, so
estimation can be exercised against a known ground truth.
"""

import dataclasses
import math
from collections.abc import Sequence

import numpy as np

from thermalnet.config import DEFAULT
from thermalnet.errors import ValidationError
from thermalnet.solver import simulate_thermal_network
from thermalnet.types import (
    MeasurementData,
    SimulationSettings,
    ThermalEdge,
    ThermalNode,
)


def generate_measurements(
    nodes: Sequence[ThermalNode],
    edges: Sequence[ThermalEdge],
    settings: SimulationSettings,
    noise_level: float = DEFAULT.noise_level,
    rng: np.random.Generator | None = None,
) -> list[MeasurementData]:
    """Simulate the network and return one noisy trace per node.

    Each temperature T is perturbed by a uniform draw from
    [-noise_level * |T|, +noise_level * |T|].

    Args:
        nodes: Network nodes (ground truth parameters)
        edges: Network edges (ground truth parameters)
        settings: Simulation time step and span
        noise_level: Relative noise amplitude, 0 for exact traces
        rng: Random generator (a fresh unseeded one if None)

    Returns:
        MeasurementData per node, sampled on the simulation times
    """
    if not math.isfinite(noise_level) or noise_level < 0:
        raise ValidationError(
            f"Noise level must be a finite number >= 0 (got {noise_level}).",
            entity="settings",
            field="noise_level",
            constraint="negative",
        )
    rng = rng or np.random.default_rng()

    result = simulate_thermal_network(nodes, edges, settings)

    measurements: list[MeasurementData] = []
    for series in result.series:
        temps = series.to_array()
        noise = rng.uniform(-1.0, 1.0, size=temps.shape) * noise_level * np.abs(temps)
        measurements.append(
            MeasurementData(
                node_id=series.node_id,
                times=list(result.times),
                temperatures=(temps + noise).tolist(),
            )
        )

    return measurements


def perturb_parameters(
    nodes: Sequence[ThermalNode],
    edges: Sequence[ThermalEdge],
    spread: float = DEFAULT.perturbation_spread,
    rng: np.random.Generator | None = None,
) -> tuple[list[ThermalNode], list[ThermalEdge]]:
    """Jitter heat capacities and conductances to build a starting guess.

    Every value is multiplied by a factor drawn from [1 - spread, 1 + spread].
    """
    if not 0 <= spread < 1:
        raise ValidationError(
            f"Perturbation spread must be in [0, 1) (got {spread}).",
            entity="settings",
            field="spread",
            constraint="out_of_range",
        )
    rng = rng or np.random.default_rng()

    def factor() -> float:
        return float(rng.uniform(1.0 - spread, 1.0 + spread))

    new_nodes = [dataclasses.replace(node, heat_capacity=node.heat_capacity * factor()) for node in nodes]
    new_edges = [dataclasses.replace(edge, conductance=edge.conductance * factor()) for edge in edges]
    return new_nodes, new_edges
