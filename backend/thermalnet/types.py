"""Core data types for the lumped thermal network.

The network is a graph where:
- Nodes are thermal masses (heat capacity C, temperature T)
- Edges are conductive links (conductance G)

Governing equation for a free node i:
    C_i * dT_i/dt = Σ_j G_ij * (T_j - T_i)

Fixed nodes are held at their fixed temperature and act as reservoirs.
All records here are plain value data; nothing in the core mutates them.
"""

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

# -----------------------------------------------------------------------------
# Network Definition
# -----------------------------------------------------------------------------


@dataclass
class ThermalNode:
    """A point of thermal mass.

    Attributes:
        id: Unique node id
        name: Display label (not used in computation)
        initial_temp: Starting temperature when not fixed (°C)
        heat_capacity: Heat capacity C (J/K), strictly positive
        is_fixed: True if the node is a constant-temperature boundary
        fixed_temp: Temperature held when is_fixed (°C)
    """

    id: str
    name: str
    initial_temp: float  # °C
    heat_capacity: float  # J/K
    is_fixed: bool = False
    fixed_temp: float = 0.0  # °C

    @property
    def start_temp(self) -> float:
        return self.fixed_temp if self.is_fixed else self.initial_temp


@dataclass
class ThermalEdge:
    """An undirected conductive link between two nodes."""

    id: str
    source: str
    target: str
    conductance: float  # W/K


# -----------------------------------------------------------------------------
# Simulation
# -----------------------------------------------------------------------------


@dataclass
class SimulationSettings:
    time_step: float  # seconds
    total_time: float  # seconds


@dataclass
class SimulationSeries:
    """Temperature trace of one node, aligned with SimulationResult.times."""

    node_id: str
    name: str
    temperatures: list[float] = field(default_factory=list)

    def to_array(self) -> NDArray[np.float64]:
        return np.asarray(self.temperatures, dtype=np.float64)


@dataclass
class SimulationResult:
    """Output of a forward simulation."""

    times: list[float]
    series: list[SimulationSeries]

    def series_for(self, node_id: str) -> SimulationSeries:
        """Get the series of a node by id."""
        for s in self.series:
            if s.node_id == node_id:
                return s
        raise KeyError(node_id)

    def final_temperatures(self) -> dict[str, float]:
        return {s.node_id: s.temperatures[-1] for s in self.series}


# -----------------------------------------------------------------------------
# Measurements and Estimation
# -----------------------------------------------------------------------------


@dataclass
class MeasurementData:
    """Observed (possibly noisy) temperature trace of one node.

    Times need not coincide with any solver step grid.
    """

    node_id: str
    times: list[float]
    temperatures: list[float]

    def __len__(self) -> int:
        return len(self.times)

    def to_arrays(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Convert to numpy arrays (times, temperatures)."""
        return (
            np.asarray(self.times, dtype=np.float64),
            np.asarray(self.temperatures, dtype=np.float64),
        )


@dataclass
class OptimizationSettings:
    max_iterations: int = 50  # forward simulations
    tolerance: float = 0.01  # on the summed per-node MSE (K²)


@dataclass
class ParameterEstimationSettings:
    measurement_data: list[MeasurementData]
    optimization_settings: OptimizationSettings = field(default_factory=OptimizationSettings)


@dataclass
class ConvergenceInfo:
    iterations: int  # forward simulations actually performed
    converged: bool
    final_error: float  # Σ over measured nodes of mean squared error


@dataclass
class ParameterEstimationResult:
    """Estimated thermal properties plus a convergence summary."""

    estimated_heat_capacities: dict[str, float]  # node id -> J/K
    estimated_conductances: dict[str, float]  # edge id -> W/K
    convergence_info: ConvergenceInfo


# -----------------------------------------------------------------------------
# Heat Flow Inspection
# -----------------------------------------------------------------------------


@dataclass
class HeatFlowEdge:
    """Heat flow along a single edge at a specific sample."""

    edge_id: str
    source: str
    target: str
    flow_watts: float  # Positive = heat flowing source -> target
    conductance: float  # W/K


@dataclass
class HeatFlowSnapshot:
    """Heat flow state at a single sample of a simulation."""

    sample_index: int
    time: float
    flows: list[HeatFlowEdge]
    net_by_node: dict[str, float]  # Positive = node gaining heat
