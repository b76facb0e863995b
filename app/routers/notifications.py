from fastapi import APIRouter
from app.schemas import (
    BulkNotificationRequest,
    BulkNotificationResponse,
    NotificationStatistics,
    SweepResult,
)
from app.services.notifications import dispatcher, get_statistics_snapshot, sweeper, task_pool

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])

@router.get("/stats", response_model=NotificationStatistics)
async def notification_stats():
    return await get_statistics_snapshot()

@router.post("/bulk", status_code=202, response_model=BulkNotificationResponse)
async def bulk_notify(data: BulkNotificationRequest):
    comments = await dispatcher.store.find_by_ids(data.comment_ids)
    found = {c.id for c in comments}
    missing = [i for i in dict.fromkeys(data.comment_ids) if i not in found]

    accepted = 0
    if comments and task_pool.submit(dispatcher.process_bulk, comments, name="bulk-notify"):
        accepted = len(comments)
    return BulkNotificationResponse(accepted=accepted, missing_ids=missing)

@router.post("/sweep", response_model=SweepResult)
async def run_sweep():
    return await sweeper.run_cycle()
