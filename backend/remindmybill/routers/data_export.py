import csv
import io

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from remindmybill.db import get_db
from remindmybill.models.subscription import Subscription
from remindmybill.models.user import User
from remindmybill.schemas.data_export import ExportFormat, ImportResult
from remindmybill.services.auth import get_current_user
from remindmybill.services.data_export import (
    export_subscriptions_csv,
    export_subscriptions_xlsx,
    import_subscriptions_from_text,
)
from remindmybill.services.limit_enforcer import sync_subscription_lock_status
from remindmybill.services.subscription_store import SqlSubscriptionStore
from remindmybill.services.tiers import is_pro

router = APIRouter(prefix="/data", tags=["data-export"])


@router.get("/export/subscriptions")
async def export_subscriptions(
    format: ExportFormat = Query(default="csv"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Subscription)
        .where(Subscription.user_id == current_user.id)
        .order_by(Subscription.name)
    )
    subs = list(result.scalars().all())

    if format == "xlsx":
        if not is_pro(current_user.tier, current_user.is_pro):
            raise HTTPException(status_code=403, detail="Spreadsheet export requires a paid plan")
        content = export_subscriptions_xlsx(subs)
        return StreamingResponse(
            io.BytesIO(content),
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers={"Content-Disposition": "attachment; filename=subscriptions.xlsx"},
        )
    content = export_subscriptions_csv(subs)
    return StreamingResponse(
        io.BytesIO(content.encode("utf-8-sig")),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": "attachment; filename=subscriptions.csv"},
    )


@router.post("/import/subscriptions", response_model=ImportResult)
async def import_subscriptions(
    file: UploadFile,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    content = await file.read()
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded CSV") from None
    try:
        result = await import_subscriptions_from_text(text, current_user.id, db)
    except csv.Error as e:
        raise HTTPException(status_code=400, detail=f"Malformed CSV: {e}") from None
    sync = await sync_subscription_lock_status(SqlSubscriptionStore(db), current_user.id)
    result.locks_changed = sync.changed_count
    return result
