#!/usr/bin/env python3
"""
Background pitch-run management
Tracks status of long-running pipeline runs and holds their cancellation tokens
"""

from typing import Dict, Any, Optional
from datetime import datetime, timedelta
from enum import Enum
import threading

from pitch_pipeline.cancellation import CancellationToken


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


FINISHED_STATUSES = (TaskStatus.COMPLETED, TaskStatus.CANCELLED, TaskStatus.FAILED)


class TaskManager:
    """Singleton task manager for tracking background pitch runs"""
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._tasks = {}
                    cls._instance._tokens = {}
        return cls._instance

    def create_task(self, task_id: str, task_type: str, metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Register a run with pending status and a fresh cancellation token"""
        now = datetime.utcnow().isoformat()
        task = {
            "task_id": task_id,
            "task_type": task_type,
            "status": TaskStatus.PENDING,
            "progress": 0,
            "message": "Run queued",
            "created_at": now,
            "updated_at": now,
            "metadata": metadata or {},
            "result": None,
            "error": None
        }
        self._tasks[task_id] = task
        self._tokens[task_id] = CancellationToken()
        return task

    def update_task(
        self,
        task_id: str,
        status: Optional[TaskStatus] = None,
        progress: Optional[int] = None,
        message: Optional[str] = None,
        result: Optional[Any] = None,
        error: Optional[str] = None
    ):
        """Update run status and progress"""
        task = self._tasks.get(task_id)
        if task is None:
            return None

        if status is not None:
            task["status"] = status
        if progress is not None:
            task["progress"] = min(100, max(0, progress))
        if message is not None:
            task["message"] = message
        if result is not None:
            task["result"] = result
        if error is not None:
            task["error"] = error
            task["status"] = TaskStatus.FAILED

        task["updated_at"] = datetime.utcnow().isoformat()
        return task

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        return self._tasks.get(task_id)

    def get_token(self, task_id: str) -> Optional[CancellationToken]:
        return self._tokens.get(task_id)

    def cancel_task(self, task_id: str) -> bool:
        """Set the run's token; the run stops after its in-flight gateway call returns"""
        task = self._tasks.get(task_id)
        token = self._tokens.get(task_id)
        if task is None or token is None or task["status"] in FINISHED_STATUSES:
            return False
        token.cancel()
        self.update_task(task_id, message="Cancellation requested")
        return True

    def delete_task(self, task_id: str):
        self._tasks.pop(task_id, None)
        self._tokens.pop(task_id, None)

    def cleanup_old_tasks(self, max_age_hours: int = 24):
        """Clean up finished runs older than specified hours"""
        cutoff = datetime.utcnow() - timedelta(hours=max_age_hours)
        to_delete = [
            task_id for task_id, task in self._tasks.items()
            if datetime.fromisoformat(task["updated_at"]) < cutoff and task["status"] in FINISHED_STATUSES
        ]
        for task_id in to_delete:
            self.delete_task(task_id)
        return len(to_delete)


# Global instance
task_manager = TaskManager()
