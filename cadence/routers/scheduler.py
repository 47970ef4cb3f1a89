"""
Scheduler API endpoints: manual tick, setup and task control.
"""

from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from cadence.container import CadenceServices, get_services
from cadence.infrastructure.exceptions import NotFoundError
from cadence.models.scheduler import ScheduledTask, SetupReport, TaskStatus, TaskType

router = APIRouter()


# ============================================================================
# Triggers
# ============================================================================

@router.post("/tick")
async def process_due_tasks(
    now: Optional[datetime] = Query(default=None, description="Evaluation time (defaults to now, UTC)"),
    services: CadenceServices = Depends(get_services),
):
    """Run every due task once, as the periodic trigger would."""
    report = await services.scheduler.process_due(now)
    return asdict(report)


@router.post("/setup", response_model=SetupReport)
async def setup_default_tasks(
    now: Optional[datetime] = Query(default=None),
    services: CadenceServices = Depends(get_services),
):
    """Create the default recurring tasks. Existing ids are skipped."""
    return await services.scheduler.setup_default_tasks(now=now)


@router.get("/status")
async def get_scheduler_status(services: CadenceServices = Depends(get_services)):
    return services.trigger.get_status()


# ============================================================================
# Tasks
# ============================================================================

@router.get("/tasks", response_model=List[ScheduledTask])
async def list_tasks(
    status: Optional[TaskStatus] = Query(default=None),
    type: Optional[TaskType] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    services: CadenceServices = Depends(get_services),
):
    """List scheduled tasks by next run time."""
    return await services.scheduler.list_tasks(status=status, type=type, limit=limit)


@router.get("/tasks/{task_id}", response_model=ScheduledTask)
async def get_task(task_id: str, services: CadenceServices = Depends(get_services)):
    task = await services.scheduler.get_task(task_id)
    if task is None:
        raise NotFoundError("Scheduled task", task_id)
    return task


@router.post("/tasks/{task_id}/pause", response_model=ScheduledTask)
async def pause_task(task_id: str, services: CadenceServices = Depends(get_services)):
    return await services.scheduler.pause_task(task_id)


@router.post("/tasks/{task_id}/resume", response_model=ScheduledTask)
async def resume_task(task_id: str, services: CadenceServices = Depends(get_services)):
    return await services.scheduler.resume_task(task_id)
