from datetime import datetime
from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from cueboard.auth import Principal, get_current_super_admin
from cueboard.config import settings
from cueboard.db import supabase
from cueboard.observability import metrics_snapshot, persist_metrics_snapshot, request_id_of

router = APIRouter(prefix="/api/admin/metrics", tags=["admin"])


class MetricsSnapshotRecord(BaseModel):
    id: str
    source: str
    request_id: str | None = None
    counters: dict
    created_at: datetime


class MetricsSnapshotFlushRequest(BaseModel):
    source: str = "admin_flush"
    reset_after_persist: bool = False


class MetricsSnapshotFlushResponse(BaseModel):
    persisted: bool
    source: str
    counter_count: int


@router.get("/", response_model=dict[str, int])
async def get_metrics(principal: Principal = Depends(get_current_super_admin)):
    """In-process counters since start-up or the last reset."""
    return metrics_snapshot()


@router.get("/snapshots", response_model=list[MetricsSnapshotRecord])
async def list_metrics_snapshots(
    limit: int = Query(50, ge=1, le=200),
    principal: Principal = Depends(get_current_super_admin),
):
    result = supabase.table("observability_metric_snapshots").select(
        "id, source, request_id, counters, created_at"
    ).order("created_at", desc=True).limit(limit).execute()
    return result.data


@router.post("/flush", response_model=MetricsSnapshotFlushResponse)
async def flush_metrics_snapshot(
    data: MetricsSnapshotFlushRequest,
    request: Request,
    principal: Principal = Depends(get_current_super_admin),
):
    counter_count = len(metrics_snapshot())
    persisted = persist_metrics_snapshot(
        supabase_client=supabase,
        source=data.source,
        request_id=request_id_of(request),
        reset_after_persist=data.reset_after_persist,
        export_url=settings.observability_export_url,
        export_bearer_token=settings.observability_export_bearer_token,
        export_timeout_seconds=settings.observability_export_timeout_seconds,
    )
    return MetricsSnapshotFlushResponse(
        persisted=persisted,
        source=data.source,
        counter_count=counter_count,
    )
