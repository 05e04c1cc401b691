"""
Health check API endpoint.

Aggregates health status from the gates handed to the router.
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

from fastapi import APIRouter, Response

from filevault.shared.gate import GateHealth


def _collect_health_data(gates: Dict[str, GateHealth]) -> Tuple[bool, Dict[str, Any]]:
    """
    Collect health data from all gates.

    Returns:
        Tuple of (all_healthy, gates_dict)
    """
    statuses = {}
    all_healthy = True

    for gate_name, gate in gates.items():
        try:
            statuses[gate_name] = gate.get_health_status()
        except Exception as e:
            statuses[gate_name] = {"healthy": False, "error": str(e)}
        if not statuses[gate_name].get("healthy", False):
            all_healthy = False

    return all_healthy, statuses


def create_router(gates: Dict[str, GateHealth]) -> APIRouter:
    router = APIRouter()

    @router.get("/api/health")
    async def api_health(response: Response) -> Dict[str, Any]:
        """
        Get aggregated health status from all Gates.

        Returns 200 when healthy, 503 when unhealthy.
        """
        all_healthy, statuses = _collect_health_data(gates)

        if not all_healthy:
            response.status_code = 503

        return {
            "healthy": all_healthy,
            "gates": statuses,
        }

    @router.get("/api/health/summary")
    async def api_health_summary(response: Response) -> Dict[str, Any]:
        """Quick health summary (just healthy/unhealthy per gate)."""
        all_healthy, statuses = _collect_health_data(gates)

        if not all_healthy:
            response.status_code = 503

        return {
            "healthy": all_healthy,
            "gates": {name: status.get("healthy", False) for name, status in statuses.items()},
        }

    return router


__all__ = ["create_router"]
