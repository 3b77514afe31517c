# slot_engine/routers/maintenance.py

from fastapi import APIRouter, Depends, HTTPException, Request

from ..schemas.businesses import MaintenanceRunResponse, MaintenanceStatusResponse
from ..services.slots import SlotMaintenance

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


def get_maintenance(request: Request) -> SlotMaintenance:
    maintenance = getattr(request.app.state, "maintenance", None)
    if maintenance is None:
        raise HTTPException(status_code=503, detail="Maintenance not initialised")
    return maintenance


@router.get("/status", response_model=MaintenanceStatusResponse)
def get_maintenance_status(maintenance: SlotMaintenance = Depends(get_maintenance)):
    return maintenance.get_status()


@router.post("/run", response_model=MaintenanceRunResponse)
def run_manual_maintenance(maintenance: SlotMaintenance = Depends(get_maintenance)):
    """Run a cycle now. started=false if one is already in progress."""
    return MaintenanceRunResponse(started=maintenance.run_manual_maintenance())
