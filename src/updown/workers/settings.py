"""arq worker settings module.

Import path for arq CLI: arq updown.workers.settings.WorkerSettings
"""

from __future__ import annotations

from arq import cron
from arq.connections import RedisSettings

from updown.config import get_settings
from updown.workers.settlement import settle_rounds, shutdown, startup, weekly_snapshot


class WorkerSettings:
    """arq worker settings for settlement and weekly snapshots."""

    functions = [settle_rounds, weekly_snapshot]
    cron_jobs = [
        cron(settle_rounds, second={5}, unique=True),
        # Friday 00:05 UTC, just after the week boundary
        cron(weekly_snapshot, weekday=4, hour={0}, minute={5}, second={0}, unique=True),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 4
    job_timeout = 120


__all__ = ["WorkerSettings"]
