"""
Export Status
=============

Tracks the steps and outcome of the current export for status subscribers.
"""

from typing import Callable, List, Optional
import itertools
import time

from cardpress.config.logging import get_logger
from cardpress.models.schemas import (
    ExportState,
    ExportStatusSnapshot,
    ExportStep,
    ExportStepStatus,
)

logger = get_logger(__name__)

StatusListener = Callable[[ExportStatusSnapshot], None]


class ExportStatusTracker:
    """Holds the latest export status and notifies listeners on every change."""

    def __init__(self) -> None:
        self._status = ExportStatusSnapshot()
        self._listeners: List[StatusListener] = []
        self._ids = itertools.count(1)
        self.logger = logger.bind(component="export_status")

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """
        Register a listener. It is called immediately with the current status.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)
        listener(self.snapshot())

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> ExportStatusSnapshot:
        return self._status.model_copy(deep=True)

    def begin_export(self) -> None:
        self._status = ExportStatusSnapshot(is_visible=True, result=ExportState.IN_PROGRESS)
        self._notify()

    def start_step(self, label: str) -> str:
        """Append an in-progress step and return its identifier."""
        step_id = f"{int(time.time() * 1000)}-{next(self._ids)}"
        steps = self._status.steps + [ExportStep(id=step_id, label=label)]
        self._update(steps=steps)
        self.logger.info("Export step started", step=label)
        return step_id

    def update_step_detail(self, step_id: str, detail: str) -> None:
        self._replace_step(step_id, detail=detail)

    def complete_step(self, step_id: str, detail: Optional[str] = None) -> None:
        self._replace_step(step_id, status=ExportStepStatus.COMPLETED, detail=detail)

    def fail_step(self, step_id: str, error_message: str) -> None:
        self._replace_step(step_id, status=ExportStepStatus.FAILED, detail=error_message)
        self.fail_export(error_message)

    def set_progress(self, progress: float) -> None:
        self._update(progress=min(max(progress, 0.0), 1.0))

    def complete_export(self) -> None:
        self._update(result=ExportState.SUCCESS, progress=1.0)
        self.logger.info("Export completed")

    def fail_export(self, error_message: str) -> None:
        self._update(is_visible=True, result=ExportState.ERROR, error_message=error_message)
        self.logger.error("Export failed", error=error_message)

    def _replace_step(self, step_id: str, **changes: object) -> None:
        steps = [
            step.model_copy(update=changes) if step.id == step_id else step
            for step in self._status.steps
        ]
        self._update(steps=steps)

    def _update(self, **changes: object) -> None:
        self._status = self._status.model_copy(update=changes)
        self._notify()

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
