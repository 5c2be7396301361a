import logging
import threading
from datetime import timedelta
from core.database import SessionLocal
from core.config import SMS_CODE_RETENTION_DAYS, TRACKER_CLEANUP_HOURS
from repositories.attempt_tracker_repository import AttemptTrackerRepository
from repositories.sms_code_repository import SmsCodeRepository
from utils.timeutil import utcnow

logger = logging.getLogger(__name__)

class AutoCleanup:

    def __init__(self, interval_hours: int = 24, session_factory=SessionLocal):
        self.interval_hours = interval_hours
        self.session_factory = session_factory
        self._stop_event = threading.Event()
        self._thread = None
        logger.info(f"AutoCleanup initialized with interval: {interval_hours}h")

    def start(self):
        if self.is_running():
            logger.warning("Auto cleanup already running")
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()
        logger.info(f"Auto cleanup started (runs every {self.interval_hours}h)")

    def stop(self):
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5)
        logger.info("Auto cleanup stopped")

    def is_running(self):
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def _run(self):
        while not self._stop_event.is_set():
            try:
                self.run_once()
            except Exception as e:
                logger.error(f"Cleanup error: {str(e)}", exc_info=True)

            self._stop_event.wait(self.interval_hours * 3600)

    def run_once(self) -> dict:
        db = self.session_factory()
        try:
            logger.info("Starting cleanup...")
            codes = self._cleanup_old_codes(db)
            trackers = self._cleanup_idle_trackers(db)
            logger.info(f"Cleanup completed: {codes} sms codes, {trackers} trackers removed")
            return {"sms_codes": codes, "trackers": trackers}
        finally:
            db.close()

    def _cleanup_old_codes(self, db) -> int:
        try:
            cutoff = utcnow() - timedelta(days=SMS_CODE_RETENTION_DAYS)
            deleted = SmsCodeRepository.delete_created_before(db, cutoff)
            db.commit()
            return deleted
        except Exception as e:
            db.rollback()
            logger.error(f"SMS code cleanup error: {str(e)}")
            return 0

    def _cleanup_idle_trackers(self, db) -> int:
        try:
            cutoff = utcnow() - timedelta(hours=TRACKER_CLEANUP_HOURS)
            deleted = AttemptTrackerRepository.delete_idle_before(db, cutoff)
            db.commit()
            return deleted
        except Exception as e:
            db.rollback()
            logger.error(f"Tracker cleanup error: {str(e)}")
            return 0
