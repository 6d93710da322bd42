"""
APScheduler wrapper for Radio Now Playing

Optional background jobs:
- refresh: poll every active station through the dispatcher so stored
  now_playing records stay current for clients that read the database
- cache purge: drop expired cache entries
- ad history cleanup: prune old ad_detections rows (daily)

The refresh job is added paused; start() resumes it.
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)


class NowPlayingScheduler:
    """Wrapper for APScheduler to manage background refresh

    Attributes:
        scheduler: BackgroundScheduler instance
        refresh_interval: Seconds between refresh runs
    """

    REFRESH_JOB_ID = 'refresh_job'
    CACHE_JOB_ID = 'cache_purge_job'
    HISTORY_JOB_ID = 'ad_history_cleanup_job'

    def __init__(self, dispatcher, refresh_interval_seconds=60, history_days=30):
        """Initialize scheduler with a dispatcher

        Args:
            dispatcher: StationDispatcher used for refresh polls
            refresh_interval_seconds: Seconds between refresh runs (default: 60)
            history_days: Days of ad detection history to keep
        """
        self.dispatcher = dispatcher
        self.refresh_interval = refresh_interval_seconds
        self.history_days = history_days
        self.scheduler = BackgroundScheduler()

        # Paused until start()
        self.scheduler.add_job(
            self._run_refresh,
            'interval',
            seconds=self.refresh_interval,
            id=self.REFRESH_JOB_ID,
            name='Now Playing Refresh Job',
            next_run_time=None,
            max_instances=1,
            coalesce=True,
        )

        self.scheduler.add_job(
            self._run_cache_purge,
            'interval',
            seconds=max(int(getattr(dispatcher.cache, 'ttl_seconds', 30)), 10),
            id=self.CACHE_JOB_ID,
            name='Cache Purge Job',
        )

        if dispatcher.sink is not None:
            self.scheduler.add_job(
                self._run_history_cleanup,
                'cron',
                hour=3,
                minute=0,
                id=self.HISTORY_JOB_ID,
                name='Ad Detection History Cleanup',
            )

        self.scheduler.start()
        logger.info(f"Scheduler initialized (refresh interval: {refresh_interval_seconds} seconds)")

    def _run_refresh(self):
        """Poll all stations (errors are logged, the job keeps running)"""
        try:
            logger.debug("Starting scheduled refresh")
            results = self.dispatcher.poll_all()
            fallbacks = sum(1 for r in results if r.is_fallback)
            logger.info(f"Scheduled refresh complete: {len(results)} stations, {fallbacks} without live data")
        except Exception as e:
            logger.error(f"Error during scheduled refresh: {e}", exc_info=True)

    def _run_cache_purge(self):
        try:
            self.dispatcher.cache.cleanup_expired()
        except Exception as e:
            logger.error(f"Error purging cache: {e}")

    def _run_history_cleanup(self):
        try:
            self.dispatcher.sink.delete_old_ad_detections(days=self.history_days)
        except Exception as e:
            logger.error(f"Error cleaning up ad detection history: {e}")

    def start(self):
        """Start/resume the refresh job

        Returns:
            True if started, False if already running
        """
        try:
            job = self.scheduler.get_job(self.REFRESH_JOB_ID)
            if job and job.next_run_time is not None:
                logger.info("Refresh job already running")
                return False

            self.scheduler.resume_job(self.REFRESH_JOB_ID)
            logger.info("Refresh job started")
            return True

        except Exception as e:
            logger.error(f"Error starting refresh job: {e}")
            return False

    def stop(self):
        """Stop/pause the refresh job

        Returns:
            True if stopped, False if already stopped
        """
        try:
            job = self.scheduler.get_job(self.REFRESH_JOB_ID)
            if not job:
                logger.warning("Refresh job not found")
                return False

            self.scheduler.pause_job(self.REFRESH_JOB_ID)
            logger.info("Refresh job stopped")
            return True

        except Exception as e:
            logger.error(f"Error stopping refresh job: {e}")
            return False

    def is_running(self):
        """Check if the refresh job is running (not paused)"""
        try:
            job = self.scheduler.get_job(self.REFRESH_JOB_ID)
            if not job:
                return False
            return job.next_run_time is not None

        except Exception as e:
            logger.error(f"Error checking job status: {e}")
            return False

    def modify_interval(self, seconds):
        """Change the refresh interval

        Args:
            seconds: New interval in seconds
        """
        try:
            trigger = IntervalTrigger(seconds=seconds)
            if self.is_running():
                self.scheduler.reschedule_job(self.REFRESH_JOB_ID, trigger=trigger)
            else:
                # reschedule_job would resume a paused job
                self.scheduler.modify_job(self.REFRESH_JOB_ID, trigger=trigger)
            self.refresh_interval = seconds
            logger.info(f"Refresh interval changed to {seconds} seconds")
            return True

        except Exception as e:
            logger.error(f"Error modifying refresh interval: {e}")
            return False

    def shutdown(self, wait=True):
        """Shutdown scheduler (graceful shutdown)

        Args:
            wait: Wait for running jobs to complete (default: True)
        """
        try:
            logger.info("Shutting down scheduler...")
            self.scheduler.shutdown(wait=wait)
            logger.info("Scheduler shut down")
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}")
