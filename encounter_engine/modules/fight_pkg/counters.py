"""
Per-campaign progress counter for parallel background workers.

Workers never read the counter and write it back. The increment is a
single UPDATE ... RETURNING so the store does the read-modify-write, and
finishing a batch is a conditional update that only one worker can win.
"""
import logging

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from . import crud, models
from .errors import NotFound

logger = logging.getLogger("encounter.counters")

GENERATING = "generating"
COMPLETE = "complete"


def start_batch(db: Session, campaign_id: str, total: int) -> models.Campaign:
    campaign = db.query(models.Campaign).filter(models.Campaign.id == campaign_id).first()
    if not campaign:
        raise NotFound(f"Campaign {campaign_id} not found")
    campaign.batch_status = GENERATING
    campaign.batch_total = total
    campaign.batch_completed = 0
    crud.commit(db, f"Start batch for campaign {campaign_id}")
    db.refresh(campaign)
    logger.info(f"Campaign {campaign_id} batch started with {total} items")
    return campaign


def increment_completion(db: Session, campaign_id: str) -> int:
    """
    Atomically adds one to the campaign's completed count and returns it.

    When the count reaches the batch total the batch is finalised.
    """
    stmt = (
        update(models.Campaign)
        .where(models.Campaign.id == campaign_id)
        .values(batch_completed=func.coalesce(models.Campaign.batch_completed, 0) + 1)
        .returning(models.Campaign.batch_completed, models.Campaign.batch_total)
        .execution_options(synchronize_session=False)
    )
    row = db.execute(stmt).first()
    if row is None:
        db.rollback()
        raise NotFound(f"Campaign {campaign_id} not found")
    completed, total = row
    crud.commit(db, f"Increment completion for campaign {campaign_id}")
    logger.info(f"Campaign {campaign_id}: {completed}/{total} completed")

    if total is not None and completed >= total:
        finalize_batch(db, campaign_id)
    return completed


def finalize_batch(db: Session, campaign_id: str) -> bool:
    """
    Marks the batch complete if it is still generating.

    Returns True only for the caller whose update actually changed the
    row; everyone racing it gets False.
    """
    stmt = (
        update(models.Campaign)
        .where(models.Campaign.id == campaign_id, models.Campaign.batch_status == GENERATING)
        .values(batch_status=COMPLETE)
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    crud.commit(db, f"Finalize batch for campaign {campaign_id}")
    won = result.rowcount == 1
    if won:
        logger.info(f"Campaign {campaign_id} batch complete")
    return won
