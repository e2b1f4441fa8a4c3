from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class DailySchedule:
    hour: int
    minute: int
    tz: ZoneInfo

    @classmethod
    def from_cron(cls, expr: str, tz_name: str) -> "DailySchedule":
        """
        Accepts the daily subset of cron: "<minute> <hour> * * *".
        Anything else (ranges, steps, weekday filters) is rejected.
        """
        parts = str(expr or "").split()
        if len(parts) != 5:
            raise ValueError(f"cron expression needs 5 fields: {expr!r}")
        minute_raw, hour_raw, dom, month, dow = parts
        if (dom, month, dow) != ("*", "*", "*"):
            raise ValueError(f"only daily cron expressions are supported: {expr!r}")
        try:
            minute = int(minute_raw)
            hour = int(hour_raw)
        except ValueError:
            raise ValueError(f"minute and hour must be plain numbers: {expr!r}")
        if not (0 <= minute <= 59 and 0 <= hour <= 23):
            raise ValueError(f"minute/hour out of range: {expr!r}")
        return cls(hour=hour, minute=minute, tz=ZoneInfo(tz_name))

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def next_fire_after(self, now: datetime) -> datetime:
        local = now.astimezone(self.tz)
        candidate = local.replace(hour=self.hour, minute=self.minute, second=0, microsecond=0)
        if candidate <= local:
            candidate = candidate + timedelta(days=1)
        return candidate


def _seconds_between(start: datetime, end: datetime) -> float:
    # Elapsed time, not wall-clock difference, so DST zones stay correct.
    return (end.astimezone(timezone.utc) - start.astimezone(timezone.utc)).total_seconds()


def fire(job: Callable[[], object]) -> bool:
    try:
        job()
        return True
    except Exception as e:
        # A failed run must not disarm the schedule.
        print(f"[scheduler] run failed: {e.__class__.__name__}: {e}", flush=True)
        return False


def run_forever(
    schedule: DailySchedule,
    job: Callable[[], object],
    stop_event: threading.Event,
    *,
    now_fn: Optional[Callable[[], datetime]] = None,
) -> None:
    clock = now_fn or schedule.now
    while not stop_event.is_set():
        now = clock()
        fire_at = schedule.next_fire_after(now)
        delay = max(0.0, _seconds_between(now, fire_at))
        print(f"[scheduler] next run at {fire_at.isoformat()}", flush=True)
        if stop_event.wait(delay):
            return
        if _seconds_between(clock(), fire_at) > 0:
            continue
        fire(job)


def start_thread(schedule: DailySchedule, job: Callable[[], object], stop_event: threading.Event) -> threading.Thread:
    thread = threading.Thread(
        target=run_forever,
        args=(schedule, job, stop_event),
        name="daily-scheduler",
        daemon=True,
    )
    thread.start()
    return thread
