from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from shopdash.app.core.database import get_db
from shopdash.app.core.i18n import default_language, translate
from shopdash.app.schemas.reports import ReportData
from shopdash.app.services.report_aggregation import AggregationError
from shopdash.app.services.report_sources import DateRange, FetchError, SqlReportSource
from shopdash.app.services.reports import generate_report, labels_for

router = APIRouter()

REQUEST_ID_HEADER = "X-Report-Request-Id"


def _default_dates(
    from_date: date | None, to_date: date | None,
) -> tuple[date, date]:
    today = date.today()
    if from_date is None:
        from_date = today.replace(day=1)
    if to_date is None:
        to_date = today
    return from_date, to_date


# ── Inventory & Sales Report ────────────────────────────────────────────────


@router.get("/inventory", response_model=ReportData)
def inventory_report(
    request: Request,
    response: Response,
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    request_id: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
) -> ReportData:
    lang = getattr(request.state, "language", None) or default_language()
    fd, td = _default_dates(from_date, to_date)
    try:
        date_range = DateRange(fd, td)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=translate(lang, "reports.invalid_range"),
        )

    outcome = generate_report(
        SqlReportSource(db), date_range, request_id=request_id, labels=labels_for(lang),
    )
    headers = {REQUEST_ID_HEADER: str(outcome.request_id)}

    if isinstance(outcome.error, FetchError):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=translate(lang, "reports.fetch_failed", entity=outcome.error.entity),
            headers=headers,
        )
    if isinstance(outcome.error, AggregationError):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=translate(lang, "reports.aggregation_failed", detail=outcome.error.detail),
            headers=headers,
        )

    response.headers.update(headers)
    return outcome.data  # type: ignore[return-value]
