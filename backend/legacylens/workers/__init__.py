"""Celery workers and tasks.

Note: Tasks are NOT imported at module level. LiteLLM is not fork-safe, so
it must not be loaded in the parent process of the Celery prefork pool.
core.celery imports the task modules explicitly.
"""

# from legacylens.workers.analysis import analyze_file
# from legacylens.workers.scheduled import requeue_stuck_files

__all__ = [
    "analyze_file",
    "requeue_stuck_files",
]
