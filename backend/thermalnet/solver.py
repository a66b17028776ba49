"""Explicit Euler solver for lumped thermal networks.

For every free node i, one step of size dt is:

    T_i(t+dt) = T_i(t) + (dt/C_i) * Σ_j G_ij * (T_j(t) - T_i(t))

All flows are evaluated from the previous snapshot, so no node sees a
neighbor's updated temperature within the same step. Fixed nodes are
clamped to their fixed temperature every step.

The scheme is conditionally stable: large G*dt/C can oscillate or
diverge. Choosing a small enough time step is up to the caller.
"""

import logging
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray

from thermalnet.config import DEFAULT_SOLVER, SolverConfig
from thermalnet.graph import build_adjacency, build_conductance_matrix
from thermalnet.types import (
    SimulationResult,
    SimulationSeries,
    SimulationSettings,
    ThermalEdge,
    ThermalNode,
)
from thermalnet.validation import validate_network

logger = logging.getLogger(__name__)


def simulate_thermal_network(
    nodes: Sequence[ThermalNode],
    edges: Sequence[ThermalEdge],
    settings: SimulationSettings,
    config: SolverConfig = DEFAULT_SOLVER,
) -> SimulationResult:
    """Advance node temperatures from t=0 to settings.total_time.

    Args:
        nodes: Network nodes
        edges: Conductive links between nodes
        settings: Time step and total time (seconds)
        config: Solver tunables

    Returns:
        Sampled times and one temperature series per node (input order)

    Raises:
        ValidationError: If any precondition is violated; nothing is computed
    """
    node_index = validate_network(nodes, edges, settings)

    adjacency = build_adjacency(len(nodes), edges, node_index)
    G = build_conductance_matrix(adjacency)
    capacities = np.array([node.heat_capacity for node in nodes], dtype=np.float64)
    fixed_mask = np.array([node.is_fixed for node in nodes], dtype=bool)
    fixed_temps = np.array([node.fixed_temp for node in nodes], dtype=np.float64)

    temps = np.array([node.start_temp for node in nodes], dtype=np.float64)
    history: list[NDArray[np.float64]] = [temps]
    times: list[float] = [0.0]

    elapsed = 0.0
    total_time = settings.total_time

    while elapsed + config.time_tolerance_s < total_time:
        step = min(settings.time_step, total_time - elapsed)
        elapsed += step

        # Net heat flow into each node (W), from the previous snapshot
        net_heat_flow = G @ temps
        next_temps = temps + (net_heat_flow / capacities) * step
        next_temps[fixed_mask] = fixed_temps[fixed_mask]

        temps = next_temps
        history.append(temps)
        times.append(round(elapsed, config.time_digits))

    trajectory = np.vstack(history)  # (n_samples, n_nodes)

    logger.debug(
        "Simulated %d nodes, %d edges over %.6g s in %d steps",
        len(nodes),
        len(edges),
        total_time,
        len(times) - 1,
    )

    return SimulationResult(
        times=times,
        series=[
            SimulationSeries(
                node_id=node.id,
                name=node.name,
                temperatures=trajectory[:, i].tolist(),
            )
            for i, node in enumerate(nodes)
        ],
    )
