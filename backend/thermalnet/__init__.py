"""Lumped-parameter thermal network simulation and identification.

The network is modeled as a graph where:
- Nodes are thermal masses with heat capacity, free or held at a fixed temperature
- Edges are conductive links with thermal conductance

Key capabilities:
- Explicit Euler simulation of node temperatures
- Parameter estimation (heat capacities and conductances) from measured traces
- Synthetic noisy measurements for testing the estimator
- Heat flow inspection of simulation results

Example usage:

    from thermalnet import (
        ParameterEstimationSettings,
        SimulationSettings,
        ThermalEdge,
        ThermalNode,
        estimate_parameters,
        generate_measurements,
        perturb_parameters,
        simulate_thermal_network,
    )

    nodes = [
        ThermalNode(id="a", name="A", initial_temp=100.0, heat_capacity=50.0),
        ThermalNode(id="b", name="B", initial_temp=20.0, heat_capacity=1.0, is_fixed=True, fixed_temp=20.0),
    ]
    edges = [ThermalEdge(id="ab", source="a", target="b", conductance=5.0)]

    result = simulate_thermal_network(nodes, edges, SimulationSettings(time_step=1.0, total_time=5.0))

    measurements = generate_measurements(nodes, edges, SimulationSettings(1.0, 60.0), noise_level=0.01)
    guess_nodes, guess_edges = perturb_parameters(nodes, edges)
    estimate = estimate_parameters(guess_nodes, guess_edges, ParameterEstimationSettings(measurements))

    print(f"Converged: {estimate.convergence_info.converged}")
"""

# Errors
from thermalnet.errors import (
    EstimationError,
    ThermalNetworkError,
    ValidationError,
)

# Parameter estimation
from thermalnet.estimation import (
    apply_estimated_parameters,
    estimate_parameters,
    implied_simulation_settings,
)

# Graph construction and heat flow
from thermalnet.graph import (
    build_adjacency,
    build_conductance_matrix,
    compute_heat_flow,
    compute_heat_flow_snapshot,
    total_thermal_energy,
)

# Measurement synthesis
from thermalnet.measurements import (
    generate_measurements,
    perturb_parameters,
)

# Solver
from thermalnet.solver import simulate_thermal_network

# Types: heat flow
from thermalnet.types import HeatFlowEdge, HeatFlowSnapshot

# Types: measurements and estimation
from thermalnet.types import (
    ConvergenceInfo,
    MeasurementData,
    OptimizationSettings,
    ParameterEstimationResult,
    ParameterEstimationSettings,
)

# Types: simulation
from thermalnet.types import SimulationResult, SimulationSeries, SimulationSettings

# Types: network
from thermalnet.types import ThermalEdge, ThermalNode

# Validation
from thermalnet.validation import require_nodes, validate_network

__all__ = [
    "ConvergenceInfo",
    "EstimationError",
    "HeatFlowEdge",
    "HeatFlowSnapshot",
    "MeasurementData",
    "OptimizationSettings",
    "ParameterEstimationResult",
    "ParameterEstimationSettings",
    "SimulationResult",
    "SimulationSeries",
    "SimulationSettings",
    "ThermalEdge",
    "ThermalNetworkError",
    "ThermalNode",
    "ValidationError",
    "apply_estimated_parameters",
    "build_adjacency",
    "build_conductance_matrix",
    "compute_heat_flow",
    "compute_heat_flow_snapshot",
    "estimate_parameters",
    "generate_measurements",
    "implied_simulation_settings",
    "perturb_parameters",
    "require_nodes",
    "simulate_thermal_network",
    "total_thermal_energy",
    "validate_network",
]
