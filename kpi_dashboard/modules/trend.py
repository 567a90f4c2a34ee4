# File: modules/trend.py
import datetime as dt
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

import pandas as pd

from kpi_dashboard.modules import data_handler as dh
from kpi_dashboard.modules.config import DEFAULT_GOALS, Goal

ANY = "Todos"
INDICATORS = [goal.column for goal in DEFAULT_GOALS.values()]


@dataclass
class TrendFilters:
    indicator: str = "% CSAT"
    employee: str = ANY
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    driver_level2: str = ANY
    next_step: str = ANY


@dataclass
class TrendSeries:
    dates: List[dt.date] = field(default_factory=list)
    averages: List[float] = field(default_factory=list)
    goal: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return not self.dates


def default_filters(df: pd.DataFrame) -> TrendFilters:
    start, end = dh.date_bounds(df)
    return TrendFilters(start_date=start, end_date=end)


def filter_trend(df: pd.DataFrame, filters: TrendFilters) -> pd.DataFrame:
    if df is None or df.empty:
        return pd.DataFrame(columns=[] if df is None else df.columns)
    mask = ~df["agent_missing"] & df["contact_date"].notna()
    if filters.employee != ANY:
        mask &= df[dh.AGENT_COL] == filters.employee
    if filters.start_date:
        mask &= df["contact_date"] >= pd.Timestamp(filters.start_date)
    if filters.end_date:
        end = pd.Timestamp(filters.end_date).normalize() + pd.Timedelta(days=1)
        mask &= df["contact_date"] < end
    if filters.driver_level2 != ANY:
        mask &= df[dh.DRIVER_L2_COL] == filters.driver_level2
    if filters.next_step != ANY:
        mask &= df[dh.NEXT_STEP_COL] == filters.next_step
    return df[mask]


def _goal_for(indicator: str, goals: Mapping[str, Goal]) -> Goal:
    for goal in goals.values():
        if goal.column == indicator:
            return goal
    raise KeyError(f"Unknown indicator: {indicator}")


def daily_average(df: pd.DataFrame, filters: TrendFilters,
                  goals: Mapping[str, Goal] = DEFAULT_GOALS) -> TrendSeries:
    """Per-day mean of the selected indicator, oldest day first."""
    goal = _goal_for(filters.indicator, goals)
    rows = filter_trend(df, filters)
    if rows.empty:
        return TrendSeries(goal=goal.target)
    values = pd.to_numeric(rows[goal.column], errors="coerce")
    daily = (
        values.groupby(rows["contact_date"].dt.normalize())
        .mean()
        .dropna()
        .sort_index()
    )
    return TrendSeries(
        dates=[ts.date() for ts in daily.index],
        averages=[float(v) for v in daily.values],
        goal=goal.target,
    )
