from sqlalchemy.orm import Session
from sqlalchemy import or_
from fastapi import HTTPException, status
from typing import Optional
from uuid import UUID
import logging

from billing.modules.revenue.models import Revenue
from billing.modules.revenue.schemas import RevenueCreate
from billing.modules.revenue.sync import MONTH_NAMES

logger = logging.getLogger(__name__)


class RevenueService:
    def __init__(self, db: Session):
        self.db = db

    def create_revenue(self, revenue_data: RevenueCreate) -> Revenue:
        """Record a ledger entry typed in by hand."""
        try:
            values = revenue_data.model_dump()
            values["service"] = revenue_data.service.value
            values["month"] = values.get("month") or MONTH_NAMES[revenue_data.invoice_date.month - 1]
            values["year"] = values.get("year") or revenue_data.invoice_date.year

            revenue = Revenue(**values, invoice_generated=False)
            self.db.add(revenue)
            self.db.commit()
            self.db.refresh(revenue)

            logger.info(f"Created revenue entry {revenue.id} for {revenue.client_name}")
            return revenue

        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating revenue entry: {e}", exc_info=True)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating revenue entry: {str(e)}"
            )

    def get_revenue_by_id(self, revenue_id: UUID) -> Revenue:
        revenue = self.db.get(Revenue, revenue_id)
        if not revenue:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Revenue entry not found"
            )
        return revenue

    def get_revenues(
        self,
        search: Optional[str] = None,
        year: Optional[int] = None,
        invoice_generated: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0
    ) -> dict:
        query = self.db.query(Revenue)

        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Revenue.client_name.ilike(pattern),
                Revenue.invoice_number.ilike(pattern),
                Revenue.service.ilike(pattern)
            ))
        if year:
            query = query.filter(Revenue.year == year)
        if invoice_generated is not None:
            query = query.filter(Revenue.invoice_generated == invoice_generated)

        total = query.count()
        revenues = query.order_by(Revenue.invoice_date.desc()).offset(offset).limit(limit).all()

        return {
            "revenues": revenues,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def get_available_revenues(self, limit: int = 100, offset: int = 0) -> dict:
        """Entries not yet converted into an invoice"""
        return self.get_revenues(invoice_generated=False, limit=limit, offset=offset)
