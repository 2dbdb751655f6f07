from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from app.services.schedule import ScheduleStore


def create_scheduler(store: ScheduleStore, refresh_hour: int = 4, interval_hours: int = 6) -> AsyncIOScheduler:
    """
    Daily refresh at `refresh_hour` plus a periodic one every `interval_hours`.
    """
    scheduler = AsyncIOScheduler()
    scheduler.add_job(store.refresh, "cron", hour=refresh_hour, minute=0, id="schedule_daily_refresh",
                      max_instances=1, coalesce=True)
    if interval_hours > 0:
        scheduler.add_job(store.refresh, "interval", hours=interval_hours, id="schedule_interval_refresh",
                          max_instances=1, coalesce=True)
    logger.info(f"Cache update: daily at {refresh_hour:02d}:00, every {interval_hours}h")
    return scheduler
