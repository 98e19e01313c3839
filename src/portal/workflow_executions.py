"""
Workflow executions viewer - recent automation runs, re-polled while any is RUNNING
"""

import logging
from typing import List, Optional

from src.integrations.contracts.interfaces import ExecutionStatus, VMSApi, WorkflowExecution
from src.portal.polling import Poller

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 5
STATUS_FILTERS = ("ALL", "SUCCESS", "FAILED", "RUNNING")


def format_duration(seconds: Optional[float]) -> str:
    if not seconds:
        return "-"
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m {seconds % 60}s"
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m"


class WorkflowExecutionsViewer:
    def __init__(
        self,
        api: VMSApi,
        status: str = "ALL",
        date_range: str = "today",
        poll_interval_seconds: float = POLL_INTERVAL_SECONDS,
    ):
        if status not in STATUS_FILTERS:
            raise ValueError(f"Unknown status filter: {status}")
        self.api = api
        self.status = status
        self.date_range = date_range
        self.executions: List[WorkflowExecution] = []
        self.loading = False
        self._poller = Poller("workflow-executions", poll_interval_seconds, self.fetch, condition=self.has_running)

    def has_running(self) -> bool:
        return any(e.status == ExecutionStatus.RUNNING for e in self.executions)

    @property
    def filtered(self) -> List[WorkflowExecution]:
        if self.status == "ALL":
            return list(self.executions)
        return [e for e in self.executions if e.status.value == self.status]

    async def fetch(self) -> List[WorkflowExecution]:
        self.loading = True
        try:
            self.executions = await self.api.list_workflow_executions(self.status, self.date_range)
        except Exception as e:
            logger.error("Failed to fetch workflow executions: %s", e)
            self.executions = []
        finally:
            self.loading = False
        return self.executions

    async def set_filter(self, status: Optional[str] = None, date_range: Optional[str] = None) -> List[WorkflowExecution]:
        if status is not None:
            if status not in STATUS_FILTERS:
                raise ValueError(f"Unknown status filter: {status}")
            self.status = status
        if date_range is not None:
            self.date_range = date_range
        return await self.fetch()

    async def retry(self, execution_id: str) -> bool:
        try:
            await self.api.retry_workflow_execution(execution_id)
        except Exception as e:
            logger.error("Failed to retry execution %s: %s", execution_id, e)
            return False
        await self.fetch()
        return True

    async def start(self) -> None:
        await self.fetch()
        self._poller.start()

    async def stop(self) -> None:
        await self._poller.stop()
