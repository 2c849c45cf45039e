from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from core.database import get_db
from modules.orchestration.dependencies import get_completion_propagator
from modules.reports.excel import build_production_progress_excel
from modules.reports.service import build_production_progress

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/production-orders/{order_id}")
def production_progress_report(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    return build_production_progress(db, propagator, order_id)


@router.get("/production-orders/{order_id}/excel")
def download_production_progress_excel(
    order_id: int, db: Session = Depends(get_db), propagator=Depends(get_completion_propagator)
):
    report = build_production_progress(db, propagator, order_id)
    stream = build_production_progress_excel(report)
    filename = f"production_progress_{report['header']['order_number']}.xlsx"
    return StreamingResponse(
        stream,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
