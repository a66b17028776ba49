"""Parameter estimation for thermal networks via bounded least squares.

This module recovers heat capacities (C) and conductances (G) from measured
temperature traces. Every candidate parameter vector is scored by a full
forward simulation: the simulated trace of each measured node is linearly
interpolated onto that node's measurement times, and the objective is

    error = Σ_nodes mean((T_sim - T_obs)²)

The search uses scipy's dogleg algorithm with rectangular trust regions on
residuals scaled by 1/sqrt(n_samples) per node, so that the optimizer's sum of
squares is exactly the error above.

Only the *dynamics* are observable: scaling every free capacity and every
conductance by the same factor leaves all traces unchanged. The minimum-norm
trust region steps keep the estimate close to the starting guess along that
direction.
"""

import dataclasses
import logging
from collections.abc import Sequence
from typing import cast

import numpy as np
from numpy.typing import NDArray
from scipy.optimize import least_squares  # pyright: ignore[reportUnknownVariableType]

from thermalnet.config import DEFAULT, EstimatorConfig
from thermalnet.errors import EstimationError, ValidationError
from thermalnet.solver import simulate_thermal_network
from thermalnet.types import (
    ConvergenceInfo,
    MeasurementData,
    OptimizationSettings,
    ParameterEstimationResult,
    ParameterEstimationSettings,
    SimulationResult,
    SimulationSettings,
    ThermalEdge,
    ThermalNode,
)
from thermalnet.validation import require_nodes, validate_network

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Internal Types
# -----------------------------------------------------------------------------


class _ScipyOptimizeResult:
    """Type stub for scipy.optimize.OptimizeResult."""

    x: NDArray[np.float64]
    status: int
    success: bool
    message: str


class _ToleranceReached(Exception):
    """Raised from the objective to stop the optimizer early."""


class _BudgetExhausted(Exception):
    """Raised from the objective when max_iterations is spent."""


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------


def estimate_parameters(
    nodes: Sequence[ThermalNode],
    edges: Sequence[ThermalEdge],
    settings: ParameterEstimationSettings,
    config: EstimatorConfig = DEFAULT,
) -> ParameterEstimationResult:
    """Estimate heat capacities and conductances from measured traces.

    The heat capacity of each free node and the conductance of each edge
    are searched. A fixed node's capacity has no effect on any trace and is
    reported unchanged. Initial/fixed temperatures and topology are held.

    Measurement traces whose node id is not in the network are ignored, as
    are network nodes without a trace.

    Args:
        nodes: Network nodes; heat capacities are the starting guess
        edges: Network edges; conductances are the starting guess
        settings: Measurement traces and optimizer settings
        config: Estimator tunables (uses defaults if not given)

    Returns:
        Best parameters found and a convergence summary

    Raises:
        EstimationError: If the measurements define no objective, or the
            starting parameters do not simulate to finite temperatures
        ValidationError: If the network or optimizer settings are invalid
    """
    optimization = settings.optimization_settings
    _validate_optimization_settings(optimization)
    # Without nodes every trace would look unknown
    require_nodes(nodes)

    sim_settings, targets = _prepare_targets(nodes, settings.measurement_data, config)
    node_index = validate_network(nodes, edges, sim_settings)

    free_nodes = [i for i, node in enumerate(nodes) if not node.is_fixed]
    x0, lower, upper = _build_initial_guess_and_bounds(nodes, edges, free_nodes, config)

    objective = _Objective(
        nodes=nodes,
        edges=edges,
        sim_settings=sim_settings,
        targets=[(node_index[node_id], times, temps) for node_id, times, temps in targets],
        free_nodes=free_nodes,
        max_evaluations=optimization.max_iterations,
        tolerance=optimization.tolerance,
        config=config,
    )

    logger.info(
        "Estimating %d parameters against %d traces (dt=%.6g s, span=%.6g s)",
        len(x0),
        len(targets),
        sim_settings.time_step,
        sim_settings.total_time,
    )

    converged = _run_optimization(objective, x0, lower, upper, optimization)

    best_x = objective.best_x
    capacities = {node.id: float(node.heat_capacity) for node in nodes}
    for k, i in enumerate(free_nodes):
        capacities[nodes[i].id] = float(best_x[k])
    conductances = {edge.id: float(best_x[len(free_nodes) + j]) for j, edge in enumerate(edges)}

    info = ConvergenceInfo(
        iterations=objective.evaluations,
        converged=converged,
        final_error=objective.best_error,
    )
    logger.info(
        "Estimation finished: converged=%s after %d evaluations, error=%.6g",
        info.converged,
        info.iterations,
        info.final_error,
    )

    return ParameterEstimationResult(
        estimated_heat_capacities=capacities,
        estimated_conductances=conductances,
        convergence_info=info,
    )


def implied_simulation_settings(
    measurement_data: Sequence[MeasurementData],
    time_digits: int = DEFAULT.solver.time_digits,
) -> SimulationSettings:
    """Derive the simulation grid implied by a set of measurement traces.

    total_time is the latest measurement time; time_step is the smallest
    positive gap between distinct measurement times (t=0 included).
    """
    all_times = [np.asarray(m.times, dtype=np.float64) for m in measurement_data]
    merged = np.concatenate([*all_times, np.zeros(1)])
    if not np.all(np.isfinite(merged)):
        raise EstimationError("Measurement times must be finite numbers.", field="times", constraint="non_finite")

    grid = np.unique(np.round(merged, time_digits))
    total_time = float(grid[-1])
    if total_time <= 0:
        raise EstimationError(
            "Measurement data must span a positive time range.",
            field="times",
            constraint="non_positive",
        )

    return SimulationSettings(time_step=float(np.min(np.diff(grid))), total_time=total_time)


# -----------------------------------------------------------------------------
# Data Preparation
# -----------------------------------------------------------------------------


def _validate_optimization_settings(optimization: OptimizationSettings) -> None:
    if optimization.max_iterations <= 0:
        raise ValidationError(
            f"max_iterations must be positive (got {optimization.max_iterations}).",
            entity="settings",
            field="max_iterations",
            constraint="non_positive",
        )
    if not np.isfinite(optimization.tolerance) or optimization.tolerance <= 0:
        raise ValidationError(
            f"tolerance must be a positive finite number (got {optimization.tolerance}).",
            entity="settings",
            field="tolerance",
            constraint="non_positive",
        )


def _prepare_targets(
    nodes: Sequence[ThermalNode],
    measurement_data: Sequence[MeasurementData],
    config: EstimatorConfig,
) -> tuple[SimulationSettings, list[tuple[str, NDArray[np.float64], NDArray[np.float64]]]]:
    """Check traces and keep the ones that refer to network nodes."""
    if not measurement_data:
        raise EstimationError(
            "No measurement data provided; the estimation objective is undefined.",
            field="measurement_data",
            constraint="empty",
        )

    node_ids = {node.id for node in nodes}
    used: list[MeasurementData] = []
    targets: list[tuple[str, NDArray[np.float64], NDArray[np.float64]]] = []

    for k, measurement in enumerate(measurement_data):
        if measurement.node_id not in node_ids:
            logger.debug("Ignoring measurement #%d for unknown node '%s'", k, measurement.node_id)
            continue

        times, temps = measurement.to_arrays()
        if len(times) != len(temps):
            raise EstimationError(
                f"Measurement for node '{measurement.node_id}' has {len(times)} times "
                f"but {len(temps)} temperatures.",
                index=k,
                id=measurement.node_id,
                field="temperatures",
                constraint="out_of_range",
            )
        if len(times) == 0:
            continue
        if not (np.all(np.isfinite(times)) and np.all(np.isfinite(temps))):
            raise EstimationError(
                f"Measurement for node '{measurement.node_id}' contains non-finite values.",
                index=k,
                id=measurement.node_id,
                constraint="non_finite",
            )
        if np.any(times < 0):
            raise EstimationError(
                f"Measurement for node '{measurement.node_id}' has negative sample times.",
                index=k,
                id=measurement.node_id,
                field="times",
                constraint="negative",
            )

        used.append(measurement)
        targets.append((measurement.node_id, times, temps))

    if not targets:
        raise EstimationError(
            "No measurement sample refers to a node of the network; the estimation objective is undefined.",
            field="measurement_data",
            constraint="dangling_reference",
        )

    return implied_simulation_settings(used, config.solver.time_digits), targets


# -----------------------------------------------------------------------------
# Optimization Setup
# -----------------------------------------------------------------------------


def _build_initial_guess_and_bounds(
    nodes: Sequence[ThermalNode],
    edges: Sequence[ThermalEdge],
    free_nodes: list[int],
    config: EstimatorConfig,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Build initial guess and parameter bounds.

    Parameter vector layout:
        [C_0, C_1, ..., C_n, G_0, G_1, ..., G_m]
    where n = number of free nodes, m = number of edges
    """
    n_free = len(free_nodes)
    n_params = n_free + len(edges)

    x0 = np.zeros(n_params, dtype=np.float64)
    lower = np.zeros(n_params, dtype=np.float64)
    upper = np.full(n_params, np.inf, dtype=np.float64)

    # Heat capacities
    for k, i in enumerate(free_nodes):
        x0[k] = nodes[i].heat_capacity
        lower[k] = min(config.heat_capacity_min, nodes[i].heat_capacity)

    # Conductances
    for j, edge in enumerate(edges):
        x0[n_free + j] = edge.conductance
        lower[n_free + j] = min(config.conductance_min, edge.conductance)

    return x0, lower, upper


class _Objective:
    """Forward-simulation residuals with evaluation budget and best tracking."""

    def __init__(
        self,
        nodes: Sequence[ThermalNode],
        edges: Sequence[ThermalEdge],
        sim_settings: SimulationSettings,
        targets: list[tuple[int, NDArray[np.float64], NDArray[np.float64]]],
        free_nodes: list[int],
        max_evaluations: int,
        tolerance: float,
        config: EstimatorConfig,
    ) -> None:
        self.nodes = list(nodes)
        self.edges = list(edges)
        self.sim_settings = sim_settings
        self.targets = targets
        self.free_nodes = free_nodes
        self.max_evaluations = max_evaluations
        self.tolerance = tolerance
        self.config = config

        self.n_residuals = sum(len(times) for _, times, _ in targets)
        self.evaluations = 0
        self.best_x: NDArray[np.float64] = np.zeros(0)
        self.best_error = float("inf")

        self._last_x: NDArray[np.float64] | None = None
        self._last_residuals: NDArray[np.float64] | None = None

    def __call__(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        if self._last_x is not None and self._last_residuals is not None and np.array_equal(x, self._last_x):
            return self._last_residuals

        if self.evaluations >= self.max_evaluations:
            raise _BudgetExhausted

        self.evaluations += 1
        residuals = self._evaluate(x)
        self._last_x = np.array(x, dtype=np.float64)
        self._last_residuals = residuals

        if self.best_error <= self.tolerance:
            raise _ToleranceReached
        return residuals

    def _evaluate(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        nodes, edges = self._candidate(x)
        try:
            with np.errstate(over="ignore", invalid="ignore"):
                result = simulate_thermal_network(nodes, edges, self.sim_settings, self.config.solver)
                residuals = self._residuals(result)
        except ValidationError as exc:
            return self._reject(x, exc.message)

        if not np.all(np.isfinite(residuals)):
            return self._reject(x, "simulated temperatures are not finite")

        error = float(residuals @ residuals)
        if error < self.best_error:
            self.best_error = error
            self.best_x = np.array(x, dtype=np.float64)
        return residuals

    def _candidate(self, x: NDArray[np.float64]) -> tuple[list[ThermalNode], list[ThermalEdge]]:
        nodes = list(self.nodes)
        for k, i in enumerate(self.free_nodes):
            nodes[i] = dataclasses.replace(nodes[i], heat_capacity=float(x[k]))

        n_free = len(self.free_nodes)
        edges = [dataclasses.replace(edge, conductance=float(x[n_free + j])) for j, edge in enumerate(self.edges)]
        return nodes, edges

    def _residuals(self, result: SimulationResult) -> NDArray[np.float64]:
        sim_times = np.asarray(result.times, dtype=np.float64)
        parts: list[NDArray[np.float64]] = []
        for i, times, temps in self.targets:
            simulated = np.interp(times, sim_times, result.series[i].to_array())
            parts.append((simulated - temps) / np.sqrt(len(times)))
        return np.concatenate(parts)

    def _reject(self, x: NDArray[np.float64], reason: str) -> NDArray[np.float64]:
        if self.evaluations == 1:
            raise EstimationError(
                f"The starting parameters cannot be evaluated: {reason}.",
                constraint="non_finite",
            )
        logger.debug("Rejected candidate %s: %s", np.array2string(x, precision=4), reason)
        return np.full(self.n_residuals, self.config.divergence_penalty, dtype=np.float64)


def _run_optimization(
    objective: _Objective,
    x0: NDArray[np.float64],
    lower_bounds: NDArray[np.float64],
    upper_bounds: NDArray[np.float64],
    optimization: OptimizationSettings,
) -> bool:
    """Run the least squares optimization, returning the convergence flag."""
    try:
        # Starting point is always the first evaluation
        objective(x0)
        if len(x0) == 0:
            return objective.best_error <= optimization.tolerance

        result = cast(
            _ScipyOptimizeResult,
            least_squares(
                objective,
                x0,
                bounds=(lower_bounds, upper_bounds),
                method="dogbox",
                x_scale=np.where(x0 > 0, x0, 1.0),
                ftol=max(optimization.tolerance, float(np.finfo(np.float64).eps)),
            ),
        )
    except _ToleranceReached:
        return True
    except _BudgetExhausted:
        return False

    logger.debug("Optimizer stopped with status %d: %s", result.status, result.message)
    # Status 2 is ftol, 4 is ftol and xtol together
    return result.status in (2, 4) or objective.best_error <= optimization.tolerance


# -----------------------------------------------------------------------------
# Result Application
# -----------------------------------------------------------------------------


def apply_estimated_parameters(
    nodes: Sequence[ThermalNode],
    edges: Sequence[ThermalEdge],
    result: ParameterEstimationResult,
) -> tuple[list[ThermalNode], list[ThermalEdge]]:
    """Return copies of the network with estimated values substituted.

    Nodes/edges whose id is absent from the result are copied unchanged.
    The inputs are not modified.
    """
    new_nodes = [
        dataclasses.replace(node, heat_capacity=result.estimated_heat_capacities[node.id])
        if node.id in result.estimated_heat_capacities
        else dataclasses.replace(node)
        for node in nodes
    ]
    new_edges = [
        dataclasses.replace(edge, conductance=result.estimated_conductances[edge.id])
        if edge.id in result.estimated_conductances
        else dataclasses.replace(edge)
        for edge in edges
    ]
    return new_nodes, new_edges
