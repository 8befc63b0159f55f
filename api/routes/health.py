"""Health check endpoints."""

from fastapi import APIRouter, Request

from medconsult import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Service health, including reachability of the delegate orchestrator."""
    manager = getattr(request.app.state, "manager", None)
    if manager is None:
        return {"status": "starting", "service": "medconsult"}

    delegate_healthy = False
    health = getattr(manager.delegate, "health_check", None)
    if health is not None:
        delegate_healthy = await health()

    return {
        "status": "healthy" if delegate_healthy else "degraded",
        "service": "medconsult",
        "version": __version__,
        "active_consultations": await manager.registry.active_count(),
        "dependencies": {"delegate": {"healthy": delegate_healthy}},
    }


@router.get("/")
async def root():
    """API root."""
    return {
        "name": "Medical Consultation API",
        "version": __version__,
        "docs": "/docs",
    }
