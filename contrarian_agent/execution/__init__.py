"""Order placement behind the ExecutionGateway interface."""

from contrarian_agent.execution.gateway import (
    DryRunGateway,
    ExecutionGateway,
    ExecutionGuard,
    HttpExecutionGateway,
    PlacedOrder,
    place_order,
)

__all__ = [
    "DryRunGateway",
    "ExecutionGateway",
    "ExecutionGuard",
    "HttpExecutionGateway",
    "PlacedOrder",
    "place_order",
]
