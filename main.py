import logging
from dataclasses import asdict
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError

from analytics import expense_type_trend
from config import get_settings
from database import init_db, session_scope
from formatting import format_currency
from grid import category_cells, subrow_cells
from ledger import LedgerFetchError, LedgerSnapshot, LedgerStore
from periods import PeriodMode, PeriodSelector, today_in
from schemas import AnalyticsQuery
from services import (
    AnalyticsBundle,
    AnalyticsRegistry,
    AnalyticsState,
    get_current_user_id,
)

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Expense Analytics")
registry = AnalyticsRegistry(lambda: today_in(settings.timezone))


@app.on_event("startup")
def startup_event():
    init_db()


def load_snapshot(owner_id: int) -> LedgerSnapshot:
    try:
        with session_scope() as session:
            return LedgerStore(session).snapshot(owner_id)
    except SQLAlchemyError as exc:
        raise LedgerFetchError(f"Ledger session failed for owner {owner_id}") from exc


def query_from_request(request: Request, *, mode: Optional[PeriodMode] = None):
    params = dict(request.query_params)
    if mode is not None:
        params["mode"] = mode.value
    try:
        return AnalyticsQuery.model_validate(params)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def apply_query(state: AnalyticsState, query: AnalyticsQuery) -> None:
    current = state.selector
    year = query.year if query.year is not None else current.year
    month = query.month if query.month is not None else current.month
    try:
        state.set_period(PeriodSelector(query.mode, year, month))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


async def refreshed_bundle(request: Request, **kwargs) -> AnalyticsBundle:
    state = registry.state_for(get_current_user_id())
    apply_query(state, query_from_request(request, **kwargs))
    try:
        return await state.refresh(load_snapshot)
    except LedgerFetchError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def money(amount) -> dict[str, object]:
    return {
        "amount": str(amount),
        "formatted": format_currency(amount, settings.currency),
    }


def selector_payload(bundle: AnalyticsBundle) -> dict[str, object]:
    selector = bundle.selector
    return {
        "mode": selector.mode.value,
        "year": selector.year,
        "month": selector.month,
        "label": selector.label,
    }


@app.get("/api/analytics")
async def api_analytics(request: Request):
    bundle = await refreshed_bundle(request)
    result = bundle.result
    return {
        "period": selector_payload(bundle),
        "available_years": list(bundle.available_years),
        "total_income": money(result.total_income),
        "total_expenses": money(result.total_expenses),
        "surplus": {
            "label": result.surplus_label,
            "amount": str(result.surplus),
            "formatted": format_currency(abs(result.surplus), settings.currency),
        },
        "categories": [
            {
                "id": category.id,
                "name": category.name,
                "color": category.color,
                "total_amount": str(category.total_amount),
                "percentage": category.percentage,
                "expense_types": [
                    {
                        "id": et.id,
                        "name": et.name,
                        "total_amount": str(et.total_amount),
                        "transaction_count": et.transaction_count,
                        "monthly_data": {k: str(v) for k, v in et.monthly_data.items()},
                        "trend": _trend_payload(et, bundle),
                    }
                    for et in category.expense_types
                ],
            }
            for category in result.categories
        ],
    }


def _trend_payload(expense_type, bundle: AnalyticsBundle):
    trend = expense_type_trend(expense_type, bundle.selector)
    return asdict(trend) if trend else None


@app.get("/api/analytics/years")
async def api_years(request: Request):
    bundle = await refreshed_bundle(request)
    return {
        "available_years": list(bundle.available_years),
        "selected_year": bundle.selector.year,
    }


@app.get("/api/analytics/grid")
async def api_grid(request: Request):
    bundle = await refreshed_bundle(request, mode=PeriodMode.yearly)
    return {
        "year": bundle.selector.year,
        "rows": [
            {
                "id": row.id,
                "name": row.name,
                "color": row.color,
                "cells": [str(cell) for cell in category_cells(row)],
                "year_total": str(row.year_total),
                "expense_types": [
                    {
                        "id": subrow.id,
                        "name": subrow.name,
                        "category_name": subrow.category_name,
                        "cells": [str(cell) for cell in subrow_cells(subrow)],
                        "year_total": str(subrow.year_total),
                    }
                    for subrow in row.expense_types
                ],
            }
            for row in bundle.grid
        ],
        "monthly_totals": {k: str(v) for k, v in bundle.totals.monthly_totals.items()},
        "grand_total": str(bundle.totals.grand_total),
    }


@app.get("/api/analytics/monthly")
async def api_monthly(request: Request):
    bundle = await refreshed_bundle(request, mode=PeriodMode.yearly)
    insights = bundle.insights
    return {
        "year": bundle.selector.year,
        "points": [
            {
                "month": point.month,
                "label": point.label,
                "expenses": str(point.expenses),
                "expense_count": point.expense_count,
            }
            for point in bundle.series
        ],
        "insights": {
            "change_percentage": insights.change_percentage,
            "is_increasing": insights.is_increasing,
            "average_spending": str(insights.average_spending),
            "highest_month": insights.highest_month.month
            if insights.highest_month
            else None,
            "lowest_month": insights.lowest_month.month
            if insights.lowest_month
            else None,
        },
    }


@app.get("/api/analytics/export.csv")
async def api_export_csv(request: Request):
    bundle = await refreshed_bundle(request, mode=PeriodMode.yearly)
    csv_text = bundle.to_csv()
    logger.info(
        "analytics_export: year=%s rows=%s",
        bundle.selector.year,
        csv_text.count("\n") + 1,
    )
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{bundle.csv_filename}"'
        },
    )
