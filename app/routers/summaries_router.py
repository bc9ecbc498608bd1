"""Summaries API: list and get."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi_pagination import Page, Params
from fastapi_pagination.ext.sqlalchemy import paginate
from sqlalchemy.orm import Session

from app.db import get_db
from app.models.summary import Summary
from app.routers.utils.dependencies import get_summary_by_id
from app.schemas.summary import SummaryRead
from app.services.summary_service import SummaryService

summaries_router = APIRouter(prefix="/summaries", tags=["Summary"])


@summaries_router.get("", response_model=Page[SummaryRead])
def list_summaries(
    params: Params = Depends(),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
) -> Page[SummaryRead]:
    stmt = SummaryService(db).search_query(status=status)
    return paginate(
        db,
        stmt,
        params=params,
        transformer=lambda items: [SummaryRead.model_validate(s) for s in items],
    )


@summaries_router.get("/{summary_id}", response_model=SummaryRead)
def get_summary(summary: Summary = Depends(get_summary_by_id)) -> SummaryRead:
    return SummaryRead.model_validate(summary)
