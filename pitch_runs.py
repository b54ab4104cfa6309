#!/usr/bin/env python3
"""
Pitch pipeline API routes
Start, track and cancel background runs; inspect the checkpoint slot and run history
"""

import logging
import uuid
from typing import Optional, Dict, Any, Literal

from fastapi import APIRouter, HTTPException, BackgroundTasks, Depends
from pydantic import BaseModel, Field

from pitch_pipeline.agents import AGENT_REGISTRY, get_agent
from pitch_pipeline.config import MODE_PITCH, RunOptions
from pitch_pipeline.gateway import build_gateway
from pitch_pipeline.orchestrator import PitchOrchestrator
from pitch_pipeline.state import MongoCheckpointStore, MongoRunHistory
from pitch_pipeline.workflows.pipeline import describe_stages, get_next_stage
from task_manager import task_manager, TaskStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pitches", tags=["pitches"])

_orchestrator: Optional[PitchOrchestrator] = None


def get_orchestrator() -> PitchOrchestrator:
    """Lazily build the configured orchestrator (gateway + Mongo checkpoint/history)"""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = PitchOrchestrator(
            build_gateway(),
            checkpoint_store=MongoCheckpointStore.from_config(),
            history=MongoRunHistory.from_config(),
        )
    return _orchestrator


class PitchRunRequest(BaseModel):
    seed_input: str = Field(..., min_length=1)  # seed idea, or the submitted script in assessment mode
    options: RunOptions = Field(default_factory=RunOptions)
    resume: bool = True


class TaskResponse(BaseModel):
    task_id: str
    task_type: str
    status: str
    progress: int
    message: str
    created_at: str
    updated_at: str
    metadata: Dict[str, Any]
    result: Optional[Any] = None
    error: Optional[str] = None


async def run_pitch_background(task_id: str, orchestrator: PitchOrchestrator, request: PitchRunRequest):
    """Background task driving one pipeline run and mirroring its progress into the task manager"""
    token = task_manager.get_token(task_id)

    def on_stage(stage, completed: int, total: int):
        task_manager.update_task(
            task_id,
            progress=5 + int(completed / total * 90),
            message=f"Completed {stage.label} ({completed}/{total})",
        )

    try:
        task_manager.update_task(task_id, status=TaskStatus.PROCESSING, progress=5, message=f"Starting {request.options.mode} pipeline...")
        outcome = await orchestrator.submit(
            request.seed_input, request.options, token=token, resume=request.resume, on_stage=on_stage,
        )
    except Exception as e:
        logger.exception("Pitch run %s crashed", task_id)
        task_manager.update_task(task_id, status=TaskStatus.FAILED, message=f"Error running pipeline: {e}", error=str(e))
        return

    if outcome["status"] == TaskStatus.COMPLETED.value:
        artifact = outcome["artifact"]
        message = "Pitch complete"
        if artifact["best_effort"]:
            message = f"Pitch complete with {len(artifact['unresolved_gates'])} unresolved gate(s)"
        task_manager.update_task(task_id, status=TaskStatus.COMPLETED, progress=100, message=message, result=artifact)
    elif outcome["status"] == TaskStatus.CANCELLED.value:
        task_manager.update_task(task_id, status=TaskStatus.CANCELLED, message=outcome["message"])
    else:
        task_manager.update_task(task_id, message=f"Run failed: {outcome['error']}", error=outcome["error"])


@router.post("/runs")
async def start_run(request: PitchRunRequest, background_tasks: BackgroundTasks,
                    orchestrator: PitchOrchestrator = Depends(get_orchestrator)):
    """Start a pitch run in the background"""
    try:
        task_manager.cleanup_old_tasks()
        task_id = f"pitch_run_{uuid.uuid4().hex[:8]}"
        task_manager.create_task(
            task_id,
            f"{request.options.mode}_run",
            metadata={
                "seed_input": request.seed_input,
                "options": request.options.model_dump(),
                "resume": request.resume,
            },
        )
        background_tasks.add_task(run_pitch_background, task_id, orchestrator, request)
        logger.info("Scheduled pitch run %s", task_id)
        return {"success": True, "message": "Pitch run started", "task_id": task_id}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/runs/{task_id}", response_model=TaskResponse)
async def get_run(task_id: str):
    """Get status of a pitch run"""
    task = task_manager.get_task(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Run not found")
    return task


@router.post("/runs/{task_id}/cancel")
async def cancel_run(task_id: str):
    """Request cooperative cancellation of a pitch run"""
    task = task_manager.get_task(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Run not found")
    if not task_manager.cancel_task(task_id):
        raise HTTPException(status_code=409, detail=f"Run is already {task['status'].value}")
    return {"success": True, "message": "Cancellation requested"}


@router.delete("/runs/{task_id}")
async def delete_run(task_id: str):
    """Forget a run's status record"""
    if not task_manager.get_task(task_id):
        raise HTTPException(status_code=404, detail="Run not found")
    task_manager.delete_task(task_id)
    return {"success": True, "message": "Run deleted"}


@router.get("/checkpoint")
async def get_checkpoint(orchestrator: PitchOrchestrator = Depends(get_orchestrator)):
    """Describe the resumable checkpoint, if any"""
    try:
        checkpoint = orchestrator.checkpoints.load() if orchestrator.checkpoints else None
        if checkpoint is None:
            raise HTTPException(status_code=404, detail="No checkpoint")
        mode = checkpoint.standing_directives.get("mode", MODE_PITCH)
        stages = orchestrator.stages_for(mode)
        next_stage = None
        if checkpoint.last_completed_stage in [s.key for s in stages]:
            next_stage = get_next_stage(checkpoint.last_completed_stage, stages)
        return {
            "seed_input": checkpoint.seed_input,
            "mode": mode,
            "last_completed_stage": checkpoint.last_completed_stage,
            "next_stage": next_stage,
            "standing_directives": checkpoint.standing_directives,
            "started_at": checkpoint.started_at,
            "updated_at": checkpoint.updated_at,
        }
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/checkpoint")
async def discard_checkpoint(orchestrator: PitchOrchestrator = Depends(get_orchestrator)):
    """Discard the checkpoint so the next run starts fresh"""
    if orchestrator.checkpoints:
        orchestrator.checkpoints.clear()
    return {"success": True, "message": "Checkpoint cleared"}


@router.get("/history")
async def list_history(limit: int = 50, orchestrator: PitchOrchestrator = Depends(get_orchestrator)):
    """Completed runs, newest first"""
    try:
        if orchestrator.history is None:
            return []
        return orchestrator.history.list_runs(limit=limit)
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stages")
async def list_stages(mode: Literal["pitch", "assessment"] = MODE_PITCH,
                      orchestrator: PitchOrchestrator = Depends(get_orchestrator)):
    """The stage registry for a run mode, in execution order"""
    return describe_stages(orchestrator.stages_for(mode))


@router.get("/roles")
async def list_roles():
    """The roles stages can be bound to"""
    return [get_agent(name).describe() for name in AGENT_REGISTRY]
