from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SummaryBucket(BaseModel):
    count: int = 0
    total_days: int = 0


class DailyBreakdown(BaseModel):
    date: dt.date
    day_name: str
    on_leave_count: int
    on_leave_employees: List[str] = Field(default_factory=list)


class TeamStats(BaseModel):
    total_employees: int
    employees_with_leave: int
    most_common_leave_type: Optional[str] = None
    average_days_per_request: float = 0


class MonthlySummary(BaseModel):
    month: str
    status_summary: Dict[str, SummaryBucket]
    type_summary: Dict[str, SummaryBucket]
    daily_breakdown: List[DailyBreakdown]
    team_stats: TeamStats
    total_requests: int
    total_days_requested: int
