"""Centralised solver and estimator tunables.

Create a custom config to tweak values for testing::

    cfg = EstimatorConfig(divergence_penalty=1e3)
    result = estimate_parameters(nodes, edges, settings, config=cfg)
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SolverConfig:
    """Explicit Euler integration tunables."""

    # Loop stops once elapsed is within this of total_time
    time_tolerance_s: float = 1e-9

    # Decimal digits kept on recorded sample times
    time_digits: int = 6


@dataclass(frozen=True)
class EstimatorConfig:
    """Parameter estimation tunables."""

    # --- Optimizer defaults (OptimizationSettings) ---
    max_iterations: int = 50
    tolerance: float = 0.01

    # --- Parameter bounds ---
    heat_capacity_min: float = 1e-9  # J/K, keeps C strictly positive
    conductance_min: float = 0.0  # W/K

    # Residual assigned to every sample of a rejected candidate
    divergence_penalty: float = 1e6

    # --- Sample data generation ---
    noise_level: float = 0.05  # relative, ± fraction of |T|
    perturbation_spread: float = 0.2  # ±20% on initial guesses

    solver: SolverConfig = field(default_factory=SolverConfig)


DEFAULT_SOLVER = SolverConfig()
DEFAULT = EstimatorConfig()
