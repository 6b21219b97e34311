"""Dashboard API endpoint."""
from datetime import date
from typing import Optional

from fastapi import APIRouter

from distbill.api.deps import Store
from distbill.services.dashboard_service import DashboardService
from distbill.schemas.dashboard import DashboardStatsResponse

router = APIRouter()


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(store: Store, today: Optional[date] = None):
    return await DashboardService(store).get_stats(today=today)
