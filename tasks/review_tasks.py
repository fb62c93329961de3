"""
tasks/review_tasks.py
Periodic maintenance of the denormalised attraction rating aggregate.

The review manager keeps attractions.rating / attractions.reviews in step
with the reviews table on every write. This task finds attractions whose
stored aggregate no longer matches (rows edited outside the API, deleted
users, restored backups) and recomputes them.

Idempotent: a second run repairs nothing.
"""

import logging

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from services.review.service import rating_aggregate_statement
from shared.models.models import Attraction, Review
from tasks.celery_app import celery_app

logger = logging.getLogger(__name__)

RATING_TOLERANCE = 1e-6


# ── Helpers ────────────────────────────────────────────────────────────────────

def _sync_database_url(url: str) -> str:
    """Celery runs sync: swap the async driver for its blocking counterpart."""
    return url.replace("+asyncpg", "+psycopg2").replace("+aiosqlite", "")


def _get_sync_session() -> Session:
    """Create a synchronous SQLAlchemy session (Celery runs sync by default)."""
    sync_url = _sync_database_url(settings.DATABASE_URL)
    options = {"pool_pre_ping": True}
    if not sync_url.startswith("sqlite"):
        options["pool_size"] = 5
    engine = create_engine(sync_url, **options)
    SessionLocal = sessionmaker(bind=engine)
    return SessionLocal()


def reconcile_ratings(db: Session) -> int:
    """Recompute every attraction whose aggregate drifted. Returns how many were repaired."""
    stats = (
        select(
            Review.attraction_id,
            func.avg(Review.rating).label("avg_rating"),
            func.count(Review.id).label("review_count"),
        )
        .group_by(Review.attraction_id)
        .subquery()
    )
    rows = db.execute(
        select(
            Attraction.id,
            Attraction.rating,
            Attraction.reviews,
            stats.c.avg_rating,
            stats.c.review_count,
        ).outerjoin(stats, stats.c.attraction_id == Attraction.id)
    ).all()

    repaired = 0
    for row in rows:
        expected_rating = float(row.avg_rating or 0)
        expected_count = int(row.review_count or 0)
        if (
            (row.reviews or 0) != expected_count
            or abs(float(row.rating or 0) - expected_rating) > RATING_TOLERANCE
        ):
            logger.warning(
                f"Attraction {row.id} aggregate drifted: stored ({row.rating}, {row.reviews}) "
                f"vs actual ({expected_rating}, {expected_count})"
            )
            db.execute(rating_aggregate_statement(row.id))
            repaired += 1

    db.commit()
    return repaired


# ── Tasks ──────────────────────────────────────────────────────────────────────

@celery_app.task(bind=True, max_retries=3, default_retry_delay=60)
def reconcile_attraction_ratings(self):
    """Beat task: bring attraction rating / review counts back in line with reviews."""
    db = _get_sync_session()
    try:
        repaired = reconcile_ratings(db)
        logger.info(f"Rating reconcile complete: {repaired} attraction(s) repaired")
        return {"repaired": repaired}
    except Exception as exc:
        db.rollback()
        logger.error(f"Rating reconcile failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)
    finally:
        db.close()
