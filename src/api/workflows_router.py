"""
Workflow execution endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from src.api.dependencies import get_portal_config, get_vms_api
from src.integrations.contracts.interfaces import VMSApi
from src.portal.workflow_executions import STATUS_FILTERS, WorkflowExecutionsViewer, format_duration
from src.utils.config_loader import PortalConfig

api = APIRouter()


def _viewer(status: str, date_range: str, vms: VMSApi, config: PortalConfig) -> WorkflowExecutionsViewer:
    if status not in STATUS_FILTERS:
        raise HTTPException(status_code=400, detail=f"Invalid status. Expected one of {', '.join(STATUS_FILTERS)}.")
    return WorkflowExecutionsViewer(
        vms,
        status=status,
        date_range=date_range,
        poll_interval_seconds=config.polling.workflow_executions_seconds,
    )


def _listing(viewer: WorkflowExecutionsViewer, config: PortalConfig):
    return {
        "executions": [
            {"execution": e, "duration": format_duration(e.duration_seconds)} for e in viewer.filtered
        ],
        "has_running": viewer.has_running(),
        "poll_interval_seconds": config.polling.workflow_executions_seconds if viewer.has_running() else None,
    }


@api.get("/workflows/executions", tags=["Workflows"])
async def list_executions(
    status: str = Query(default="ALL"),
    date_range: str = Query(default="today", alias="range"),
    vms: VMSApi = Depends(get_vms_api),
    config: PortalConfig = Depends(get_portal_config),
):
    viewer = _viewer(status, date_range, vms, config)
    await viewer.fetch()
    return _listing(viewer, config)


@api.post("/workflows/executions/{execution_id}/retry", tags=["Workflows"])
async def retry_execution(
    execution_id: str,
    vms: VMSApi = Depends(get_vms_api),
    config: PortalConfig = Depends(get_portal_config),
):
    viewer = _viewer("ALL", "today", vms, config)
    if not await viewer.retry(execution_id):
        raise HTTPException(status_code=502, detail="Failed to retry execution")
    return {"retried": execution_id, **_listing(viewer, config)}
