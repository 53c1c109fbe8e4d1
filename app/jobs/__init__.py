# Jobs Package - background maintenance tasks
from .recalc_jobs import RecalcJobRunner, RecalcScheduler, start_scheduler, stop_scheduler, get_scheduler, dispatch

__all__ = ["RecalcJobRunner", "RecalcScheduler", "start_scheduler", "stop_scheduler", "get_scheduler", "dispatch"]
