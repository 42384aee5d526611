"""
Error kinds raised by the schedule engine.

Library code raises these; only the compute boundary turns them into a
structured error result for the caller.
"""
from typing import Optional, Sequence


class ScheduleEngineError(Exception):
    """Base class. `code` is stable and safe to show to API clients."""

    code = "schedule_engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class CycleDetected(ScheduleEngineError):
    code = "cycle_detected"

    def __init__(self, unresolved: Sequence[str]):
        self.unresolved = list(unresolved)
        preview = ", ".join(self.unresolved[:10])
        if len(self.unresolved) > 10:
            preview += ", ..."
        super().__init__(
            f"Dependency cycle detected; {len(self.unresolved)} task(s) could not be ordered: {preview}"
        )


class UnknownPredecessor(ScheduleEngineError):
    code = "unknown_predecessor"

    def __init__(self, task_id: str, predecessor_id: str):
        self.task_id = task_id
        self.predecessor_id = predecessor_id
        super().__init__(f"Task {task_id!r} depends on unknown task {predecessor_id!r}")


class DuplicateTaskId(ScheduleEngineError):
    code = "duplicate_task_id"

    def __init__(self, task_ids: Sequence[str]):
        self.task_ids = sorted(set(task_ids))
        super().__init__(f"Duplicate task ids found: {', '.join(self.task_ids)}")


class InvalidRequest(ScheduleEngineError):
    code = "invalid_request"

    def __init__(self, message: str, details: Optional[list] = None):
        super().__init__(message)
        self.details = details or []


class MalformedDistribution(ValueError):
    """Distribution text that is present but cannot be used.

    Never fatal: the sampler degrades the task to its base duration.
    """

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Malformed distribution {text!r}: {reason}")
