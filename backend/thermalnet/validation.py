"""Precondition checks shared by the solver and the estimator.

Checks run in a fixed order and the first violation wins:

1. nodes non-empty
2. time_step finite and > 0
3. total_time finite and > 0
4. total_time >= time_step
5. per node: heat_capacity finite and > 0, initial_temp finite,
   fixed_temp finite when fixed
6. per edge: conductance finite and >= 0
7. edge endpoints refer to existing node ids
8. node ids unique
"""

import logging
import math
from collections.abc import Sequence

from thermalnet.errors import ValidationError
from thermalnet.types import SimulationSettings, ThermalEdge, ThermalNode

logger = logging.getLogger(__name__)


def validate_network(
    nodes: Sequence[ThermalNode],
    edges: Sequence[ThermalEdge],
    settings: SimulationSettings,
) -> dict[str, int]:
    """Validate a network and its settings.

    Returns:
        Mapping node id -> node index, built while checking references

    Raises:
        ValidationError: On the first violated precondition
    """
    try:
        require_nodes(nodes)
        _validate_settings(settings)

        for i, node in enumerate(nodes):
            _validate_node(i, node)

        for j, edge in enumerate(edges):
            if not math.isfinite(edge.conductance) or edge.conductance < 0:
                raise ValidationError(
                    f"Edge {_edge_label(j, edge)}: conductance must be a finite number >= 0 (got {edge.conductance}).",
                    entity="edge",
                    index=j,
                    id=edge.id,
                    field="conductance",
                    constraint="non_finite" if not math.isfinite(edge.conductance) else "negative",
                )

        node_ids = {node.id for node in nodes}
        for j, edge in enumerate(edges):
            for endpoint_field in ("source", "target"):
                endpoint = getattr(edge, endpoint_field)
                if endpoint not in node_ids:
                    raise ValidationError(
                        f"Edge {_edge_label(j, edge)} references missing node '{endpoint}' as its {endpoint_field}.",
                        entity="edge",
                        index=j,
                        id=edge.id,
                        field=endpoint_field,
                        constraint="dangling_reference",
                    )

        node_index: dict[str, int] = {}
        for i, node in enumerate(nodes):
            if node.id in node_index:
                raise ValidationError(
                    f"Node {_node_label(i, node)}: id '{node.id}' is already used by node #{node_index[node.id]}.",
                    entity="node",
                    index=i,
                    id=node.id,
                    name=node.name,
                    field="id",
                    constraint="duplicate_id",
                )
            node_index[node.id] = i
    except ValidationError as exc:
        logger.debug("Network rejected: %s", exc.message)
        raise

    return node_index


def require_nodes(nodes: Sequence[ThermalNode]) -> None:
    """Reject an empty network. First check of validate_network."""
    if not nodes:
        raise ValidationError(
            "The network has no nodes; add at least one node.",
            entity="network",
            field="nodes",
            constraint="empty",
        )


def _validate_settings(settings: SimulationSettings) -> None:
    time_step = settings.time_step
    total_time = settings.total_time

    if not math.isfinite(time_step) or time_step <= 0:
        raise ValidationError(
            f"Time step must be a positive finite number (got {time_step}).",
            entity="settings",
            field="time_step",
            constraint="non_finite" if not math.isfinite(time_step) else "non_positive",
        )

    if not math.isfinite(total_time) or total_time <= 0:
        raise ValidationError(
            f"Total simulation time must be a positive finite number (got {total_time}).",
            entity="settings",
            field="total_time",
            constraint="non_finite" if not math.isfinite(total_time) else "non_positive",
        )

    if total_time < time_step:
        raise ValidationError(
            f"Total simulation time ({total_time}) must be at least the time step ({time_step}).",
            entity="settings",
            field="total_time",
            constraint="out_of_range",
        )


def _validate_node(index: int, node: ThermalNode) -> None:
    label = _node_label(index, node)

    if not math.isfinite(node.heat_capacity) or node.heat_capacity <= 0:
        raise ValidationError(
            f"Node {label}: heat capacity must be a positive finite number (got {node.heat_capacity}).",
            entity="node",
            index=index,
            id=node.id,
            name=node.name,
            field="heat_capacity",
            constraint="non_finite" if not math.isfinite(node.heat_capacity) else "non_positive",
        )

    if not math.isfinite(node.initial_temp):
        raise ValidationError(
            f"Node {label}: initial temperature is not a finite number (got {node.initial_temp}).",
            entity="node",
            index=index,
            id=node.id,
            name=node.name,
            field="initial_temp",
            constraint="non_finite",
        )

    if node.is_fixed and not math.isfinite(node.fixed_temp):
        raise ValidationError(
            f"Node {label}: fixed temperature is not a finite number (got {node.fixed_temp}).",
            entity="node",
            index=index,
            id=node.id,
            name=node.name,
            field="fixed_temp",
            constraint="non_finite",
        )


def _node_label(index: int, node: ThermalNode) -> str:
    """Name where available, else index."""
    if node.name:
        return f"'{node.name}'"
    return f"#{index}"


def _edge_label(index: int, edge: ThermalEdge) -> str:
    if edge.id:
        return f"'{edge.id}' (#{index})"
    return f"#{index}"
