"""Thermal graph construction and heat flow mapping.

This module treats the network as a weighted graph where:
- Nodes are thermal masses, addressed internally by integer index
- Edges are conductive links weighted by conductance

Heat flows along edges: Q_ij = G_ij * (T_i - T_j)
"""

from collections.abc import Mapping, Sequence

import numpy as np
from numpy.typing import NDArray

from thermalnet.errors import ValidationError
from thermalnet.types import (
    HeatFlowEdge,
    HeatFlowSnapshot,
    SimulationResult,
    ThermalEdge,
    ThermalNode,
)

Adjacency = list[list[tuple[int, float]]]


def build_adjacency(
    n_nodes: int,
    edges: Sequence[ThermalEdge],
    node_index: Mapping[str, int],
    conductances: Sequence[float] | None = None,
) -> Adjacency:
    """Build the per-node neighbor list.

    Each edge contributes (neighbor_index, conductance) to both of its
    endpoints. Parallel edges stay separate entries.

    Args:
        n_nodes: Number of nodes
        edges: Edges whose endpoints are keys of node_index
        node_index: Node id -> index
        conductances: Optional per-edge override of edge.conductance

    Returns:
        adjacency[i] = [(j, G), ...]
    """
    adjacency: Adjacency = [[] for _ in range(n_nodes)]

    for k, edge in enumerate(edges):
        g = float(edge.conductance if conductances is None else conductances[k])
        i = node_index[edge.source]
        j = node_index[edge.target]
        adjacency[i].append((j, g))
        adjacency[j].append((i, g))

    return adjacency


def build_conductance_matrix(adjacency: Adjacency) -> NDArray[np.float64]:
    """Build the conductance matrix G for the thermal network.

    The conductance matrix G is defined such that:
    - G[i,j] = summed conductance between node i and node j (off-diagonal)
    - G[i,i] = -sum of all conductances from node i (diagonal)

    so that the net heat flow into every node is G @ T.

    Args:
        adjacency: Neighbor lists from build_adjacency

    Returns:
        Conductance matrix G, shape (n_nodes, n_nodes)
    """
    n = len(adjacency)
    G = np.zeros((n, n), dtype=np.float64)

    for i, neighbors in enumerate(adjacency):
        for j, g in neighbors:
            G[i, j] += g
            G[i, i] -= g

    return G


def compute_heat_flow(
    from_temp: float,
    to_temp: float,
    conductance: float,
) -> float:
    """Compute heat flow between two nodes.

    Heat flows from higher to lower temperature.

    Args:
        from_temp: Temperature of source node (°C)
        to_temp: Temperature of destination node (°C)
        conductance: Thermal conductance G (W/K)

    Returns:
        Heat flow Q (W), positive means heat flows from -> to
    """
    return conductance * (from_temp - to_temp)


def compute_heat_flow_snapshot(
    nodes: Sequence[ThermalNode],
    edges: Sequence[ThermalEdge],
    result: SimulationResult,
    sample_index: int = -1,
) -> HeatFlowSnapshot:
    """Compute heat flow along all edges at one sample of a simulation.

    Args:
        nodes: Nodes the result was simulated from
        edges: Edges of the network
        result: Simulation output
        sample_index: Index into result.times (negative counts from the end)

    Returns:
        Heat flow snapshot with flows along each edge

    Raises:
        ValidationError: If sample_index is out of range, or an edge endpoint
            is missing from the nodes or the result
    """
    n_samples = len(result.times)
    if not -n_samples <= sample_index < n_samples:
        raise ValidationError(
            f"Sample index {sample_index} is out of range for a result with {n_samples} samples.",
            entity="settings",
            field="sample_index",
            constraint="out_of_range",
        )
    index = sample_index % n_samples

    temps = {s.node_id: s.temperatures[index] for s in result.series}
    flows: list[HeatFlowEdge] = []
    net_by_node: dict[str, float] = {node.id: 0.0 for node in nodes}

    for j, edge in enumerate(edges):
        for endpoint_field in ("source", "target"):
            endpoint = getattr(edge, endpoint_field)
            if endpoint not in temps or endpoint not in net_by_node:
                raise ValidationError(
                    f"Edge '{edge.id}' references node '{endpoint}', which has no temperature in the result.",
                    entity="edge",
                    index=j,
                    id=edge.id,
                    field=endpoint_field,
                    constraint="dangling_reference",
                )

        flow = compute_heat_flow(temps[edge.source], temps[edge.target], edge.conductance)
        flows.append(
            HeatFlowEdge(
                edge_id=edge.id,
                source=edge.source,
                target=edge.target,
                flow_watts=flow,
                conductance=edge.conductance,
            )
        )
        net_by_node[edge.source] -= flow  # Heat leaving source
        net_by_node[edge.target] += flow  # Heat entering target

    return HeatFlowSnapshot(
        sample_index=index,
        time=result.times[index],
        flows=flows,
        net_by_node=net_by_node,
    )


def total_thermal_energy(
    nodes: Sequence[ThermalNode],
    temperatures: Mapping[str, float],
) -> float:
    """Stored thermal energy Σ C_i * T_i (J, relative to 0 °C)."""
    return float(sum(node.heat_capacity * temperatures[node.id] for node in nodes))
