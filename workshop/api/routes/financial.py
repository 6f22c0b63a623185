from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError
from sqlalchemy.orm import Session

from workshop.core.dependencies import get_db
from workshop.core.errors import ValidationFailed
from workshop.schemas.financial import FinancialReportRequest, Granularity
from workshop.services.financial_service import financial_report


router = APIRouter(prefix="/financeiro", tags=["Financial"])


@router.post("")
def post_financial_report(payload: FinancialReportRequest, db: Session = Depends(get_db)):
    buckets = financial_report(
        db,
        payload.start_date,
        payload.end_date,
        payload.granularity,
        payload.status,
    )
    return [bucket.as_dict() for bucket in buckets]


@router.get("/report")
def get_financial_report(
    start_date: str = Query(...),
    end_date: str = Query(...),
    granularity: Granularity = Query("month"),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    try:
        payload = FinancialReportRequest(
            start_date=start_date,
            end_date=end_date,
            granularity=granularity,
            status=status,
        )
    except ValidationError as exc:
        error = exc.errors()[0]
        field = str(error["loc"][0]) if error.get("loc") else "end_date"
        raise ValidationFailed(field, error["msg"])

    return post_financial_report(payload, db)
