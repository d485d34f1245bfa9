"""APScheduler wrapper exposing higher level helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import RefreshSchedule, ScheduleType
from ..logging_conf import configure_logging


class APSchedulerAdapter:
    """Own a background scheduler and the periodic jobs registered on it."""

    def __init__(self) -> None:
        self.scheduler = BackgroundScheduler()
        self.logger = configure_logging().bind(component="scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_interval(
        self, job_id: str, callback: Callable[..., Any], seconds: float, args: list | None = None
    ) -> None:
        trigger = IntervalTrigger(seconds=float(seconds))
        self.scheduler.add_job(
            callback, trigger=trigger, id=job_id, args=args or [], replace_existing=True
        )
        self.logger.info("job_scheduled", job_id=job_id, interval_seconds=float(seconds))

    def schedule(
        self,
        job_id: str,
        callback: Callable[..., Any],
        schedule: RefreshSchedule,
        args: list | None = None,
    ) -> None:
        trigger = self._build_trigger(schedule)
        self.scheduler.add_job(
            callback, trigger=trigger, id=job_id, args=args or [], replace_existing=True
        )
        self.logger.info("job_scheduled", job_id=job_id, schedule=schedule.model_dump(mode="json"))

    def remove(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            self.logger.warning("job_remove_failed", job_id=job_id)

    def _build_trigger(self, schedule: RefreshSchedule):
        if schedule.type is ScheduleType.CRON:
            return CronTrigger.from_crontab(str(schedule.value))
        if schedule.type is ScheduleType.INTERVAL:
            if isinstance(schedule.value, (int, float)):
                return IntervalTrigger(seconds=float(schedule.value))
            if isinstance(schedule.value, dict):
                return IntervalTrigger(**schedule.value)
            raise ValueError("Interval schedule requires seconds or kwargs dict")
        if schedule.type is ScheduleType.ONCE:
            if schedule.value:
                run_date = datetime.fromisoformat(str(schedule.value))
            else:
                run_date = datetime.now()
            return DateTrigger(run_date=run_date)
        raise ValueError(f"Unknown schedule type: {schedule.type}")

    def list_jobs(self) -> list[dict]:
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append(
                {
                    "id": job.id,
                    "next_run_time": getattr(job, "next_run_time", None),
                    "trigger": str(job.trigger),
                }
            )
        return jobs


__all__ = ["APSchedulerAdapter"]
