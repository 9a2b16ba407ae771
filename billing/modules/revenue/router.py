"""
Router for the revenue ledger
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from billing.core.config import settings
from billing.database.database import get_db
from billing.modules.revenue.schemas import RevenueCreate, RevenueOut, RevenueList
from billing.modules.revenue.service import RevenueService

revenue_router = APIRouter(
    prefix="/revenue",
    tags=["Revenue"],
    responses={404: {"description": "Not found"}}
)


@revenue_router.post("/", response_model=RevenueOut, status_code=status.HTTP_201_CREATED)
async def create_revenue(revenue_data: RevenueCreate, db: Session = Depends(get_db)):
    service = RevenueService(db)
    return service.create_revenue(revenue_data)


@revenue_router.get("/", response_model=RevenueList)
async def get_revenues(
    search: Optional[str] = Query(None, description="Client, invoice number or service"),
    year: Optional[int] = Query(None),
    invoice_generated: Optional[bool] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    service = RevenueService(db)
    return service.get_revenues(search, year, invoice_generated, limit, offset)


@revenue_router.get("/available", response_model=RevenueList)
async def get_available_revenues(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db)
):
    """
    Ledger entries that can still be converted into an invoice
    """
    service = RevenueService(db)
    return service.get_available_revenues(limit, offset)


@revenue_router.get("/{revenue_id}", response_model=RevenueOut)
async def get_revenue(revenue_id: UUID, db: Session = Depends(get_db)):
    service = RevenueService(db)
    return service.get_revenue_by_id(revenue_id)
