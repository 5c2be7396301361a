from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from models.attempt_tracker import AttemptTracker, ThrottleScope
from datetime import datetime, timezone
from typing import Optional

class AttemptTrackerRepository:

    @staticmethod
    def get_by_subject_and_scope(db: Session, subject: str, scope: ThrottleScope) -> Optional[AttemptTracker]:
        return db.query(AttemptTracker).filter(AttemptTracker.subject == subject, AttemptTracker.scope == scope).first()

    @staticmethod
    def create_tracker(db: Session, subject: str, scope: ThrottleScope) -> AttemptTracker:
        now = datetime.now(timezone.utc)
        tracker = AttemptTracker(
            subject=subject,
            scope=scope,
            attempts_count=0,
            created_at=now,
            last_attempt_at=now,
        )
        db.add(tracker)
        db.flush()
        return tracker

    @staticmethod
    def get_or_create(db: Session, subject: str, scope: ThrottleScope) -> AttemptTracker:
        tracker = AttemptTrackerRepository.get_by_subject_and_scope(db, subject, scope)
        if tracker:
            return tracker
        try:
            tracker = AttemptTrackerRepository.create_tracker(db, subject, scope)
            db.commit()
        except IntegrityError:
            # created concurrently by another request
            db.rollback()
            tracker = AttemptTrackerRepository.get_by_subject_and_scope(db, subject, scope)
        return tracker

    @staticmethod
    def lock(db: Session, subject: str, scope: ThrottleScope) -> AttemptTracker:
        """
        Return the tracker row locked for the rest of the transaction.

        The no-op UPDATE opens a write transaction, which on SQLite takes the
        database write lock that FOR UPDATE would be silently dropped for.
        """
        AttemptTrackerRepository.get_or_create(db, subject, scope)
        db.execute(
            update(AttemptTracker)
            .where(AttemptTracker.subject == subject, AttemptTracker.scope == scope)
            .values(attempts_count=AttemptTracker.attempts_count)
        )
        return (
            db.query(AttemptTracker)
            .filter(AttemptTracker.subject == subject, AttemptTracker.scope == scope)
            .with_for_update()
            .populate_existing()
            .one()
        )

    @staticmethod
    def reset_attempts(tracker: AttemptTracker, now: datetime) -> None:
        tracker.attempts_count = 0
        tracker.window_started_at = now
        tracker.locked_until = None

    @staticmethod
    def increment_attempt(tracker: AttemptTracker, now: datetime) -> int:
        tracker.attempts_count += 1
        tracker.last_attempt_at = now
        return tracker.attempts_count

    @staticmethod
    def delete_idle_before(db: Session, cutoff: datetime) -> int:
        return (
            db.query(AttemptTracker)
            .filter(AttemptTracker.last_attempt_at < cutoff)
            .filter((AttemptTracker.locked_until.is_(None)) | (AttemptTracker.locked_until < cutoff))
            .delete(synchronize_session=False)
        )
