"""
定时任务调度器

运行方式：
    python -m app.worker.scheduler
"""

import logging
from datetime import timezone

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.worker.tasks import sweep_payouts

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_scheduler() -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone=timezone.utc)
    scheduler.add_job(
        sweep_payouts,
        IntervalTrigger(minutes=settings.PAYOUT_SWEEP_INTERVAL_MINUTES),
        id="payout_sweep",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def main() -> None:
    scheduler = build_scheduler()
    logger.info(
        "Scheduler started. Payout sweep runs every %d minutes.",
        settings.PAYOUT_SWEEP_INTERVAL_MINUTES,
    )
    scheduler.start()


if __name__ == "__main__":
    main()
