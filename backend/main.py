"""FastAPI entry point - thin layer over the thermal network core."""

import asyncio
import logging

import numpy as np
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from thermalnet import (
    HeatFlowSnapshot,
    MeasurementData,
    ParameterEstimationResult,
    ParameterEstimationSettings,
    SimulationResult,
    SimulationSettings,
    ThermalEdge,
    ThermalNetworkError,
    ThermalNode,
    apply_estimated_parameters,
    compute_heat_flow_snapshot,
    estimate_parameters,
    generate_measurements,
    simulate_thermal_network,
)
from thermalnet.config import DEFAULT as DEFAULT_ESTIMATOR_CONFIG

logging.basicConfig(level=logging.WARNING, format="%(name)s | %(message)s")
logging.getLogger("thermalnet").setLevel(logging.INFO)

logger = logging.getLogger(__name__)

app = FastAPI(title="Thermal Network API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ThermalNetworkError)
async def thermal_network_error_handler(request: Request, exc: ThermalNetworkError) -> JSONResponse:
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=422, content=exc.to_dict())


class Network(BaseModel):
    nodes: list[ThermalNode]
    edges: list[ThermalEdge]


class SimulateRequest(Network):
    settings: SimulationSettings


class MeasurementRequest(Network):
    settings: SimulationSettings
    noise_level: float = DEFAULT_ESTIMATOR_CONFIG.noise_level
    seed: int | None = None


class EstimateRequest(Network):
    settings: ParameterEstimationSettings


class ApplyRequest(Network):
    result: ParameterEstimationResult


class HeatFlowRequest(Network):
    result: SimulationResult
    sample_index: int = -1


@app.post("/thermal/simulate")
def simulate(request: SimulateRequest) -> SimulationResult:
    """Run a forward simulation of the network."""
    return simulate_thermal_network(request.nodes, request.edges, request.settings)


@app.post("/thermal/measurements")
def measurements(request: MeasurementRequest) -> list[MeasurementData]:
    """Generate noisy sample traces from a simulation of the network."""
    return generate_measurements(
        request.nodes,
        request.edges,
        request.settings,
        noise_level=request.noise_level,
        rng=np.random.default_rng(request.seed),
    )


@app.post("/thermal/estimate")
async def estimate(request: EstimateRequest) -> ParameterEstimationResult:
    """Estimate heat capacities and conductances against measured traces.

    Runs in a worker thread so the event loop keeps serving requests.
    """
    return await asyncio.to_thread(estimate_parameters, request.nodes, request.edges, request.settings)


@app.post("/thermal/apply")
def apply(request: ApplyRequest) -> Network:
    """Return the network with estimated parameters substituted."""
    nodes, edges = apply_estimated_parameters(request.nodes, request.edges, request.result)
    return Network(nodes=nodes, edges=edges)


@app.post("/thermal/heat-flow")
def heat_flow(request: HeatFlowRequest) -> HeatFlowSnapshot:
    """Heat flow along every edge at one sample of a simulation result."""
    return compute_heat_flow_snapshot(request.nodes, request.edges, request.result, request.sample_index)
