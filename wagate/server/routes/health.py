"""GET /api/health endpoint handler."""
from datetime import datetime, timezone
from fastapi import APIRouter, status
from wagate.server.models.responses import HealthResponse
from wagate.sessions.models import SessionState
from wagate.sessions.orchestrator import SessionOrchestrator


def create_health_router(orchestrator: SessionOrchestrator) -> APIRouter:
    """Create health router with injected dependencies."""
    router = APIRouter()

    @router.get("/api/health", response_model=HealthResponse, status_code=status.HTTP_200_OK, tags=["status"])
    async def health_check() -> HealthResponse:
        """Report how many sessions are tracked and how many are ready."""
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
        snapshots = orchestrator.list_sessions()
        ready = sum(1 for s in snapshots if s.state is SessionState.READY)
        return HealthResponse(status="healthy", sessions=len(snapshots), ready=ready, timestamp=timestamp)

    return router
