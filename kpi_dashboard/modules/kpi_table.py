# File: modules/kpi_table.py
import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

import pandas as pd

from kpi_dashboard.modules.config import DEFAULT_GOALS, Goal
from kpi_dashboard.modules.data_handler import AGENT_COL

ALL = "All"
ROWS_PER_PAGE_OPTIONS = (5, 10, 20, 50, 100)
DEFAULT_ROWS_PER_PAGE = 10

SortConfig = Optional[Tuple[str, str]]


@dataclass
class Page:
    rows: pd.DataFrame
    page: int
    total_pages: int


def table_columns(goals: Mapping[str, Goal] = DEFAULT_GOALS) -> List[Tuple[str, str]]:
    """(key, label) pairs in display order."""
    cols = [("driver", "Driver"), ("next_step", "Next Step"), ("volume", "Volume")]
    for name, goal in goals.items():
        cols.append((name, goal.column))
        cols.append((f"{name}_Deviation", f"Desvio {name}"))
    return cols


def format_percent(value) -> str:
    if value is None or pd.isna(value):
        return ""
    return f"{float(value):.2f}%"


def deviation_color(deviation) -> Optional[str]:
    """Red shade proportional to the deviation, saturating at 50 points."""
    if deviation is None or pd.isna(deviation):
        return None
    if deviation == 0:
        return "#ffffff"
    intensity = min(float(deviation) / 50, 1)
    lightness = 100 - intensity * 50
    return f"hsl(0, 100%, {lightness:g}%)"


def build_table(df: pd.DataFrame, agent: str, driver: str = ALL, next_step: str = ALL,
                goals: Mapping[str, Goal] = DEFAULT_GOALS) -> pd.DataFrame:
    columns = [key for key, _ in table_columns(goals)]
    if df is None or df.empty or not agent:
        return pd.DataFrame(columns=columns)

    tickets = df[df[AGENT_COL] == agent]
    if driver != ALL:
        tickets = tickets[tickets["driver"] == driver]
    if next_step != ALL:
        tickets = tickets[tickets["next_step"] == next_step]

    records = []
    for (drv, nxt), group in tickets.groupby(["driver", "next_step"], sort=False):
        rec = {"driver": drv, "next_step": nxt, "volume": len(group)}
        for name, goal in goals.items():
            values = pd.to_numeric(group[goal.column], errors="coerce").dropna()
            avg = float(values.mean()) if len(values) else None
            rec[name] = avg
            rec[f"{name}_Deviation"] = goal.deviation(avg)
        records.append(rec)
    return pd.DataFrame.from_records(records, columns=columns)


def next_sort(current: SortConfig, key: str) -> SortConfig:
    if current is not None and current[0] == key and current[1] == "asc":
        return key, "desc"
    return key, "asc"


def sort_rows(table: pd.DataFrame, sort: SortConfig) -> pd.DataFrame:
    """Stable sort; missing values stay at the bottom in both directions."""
    if sort is None or table.empty or sort[0] not in table.columns:
        return table
    key, direction = sort
    return table.sort_values(key, ascending=(direction == "asc"), na_position="last", kind="mergesort")


def paginate(table: pd.DataFrame, page: int, rows_per_page: int = DEFAULT_ROWS_PER_PAGE) -> Page:
    if rows_per_page < 1:
        raise ValueError("rows_per_page must be positive")
    total_pages = math.ceil(len(table) / rows_per_page)
    page = max(1, min(page, total_pages or 1))
    start = (page - 1) * rows_per_page
    return Page(rows=table.iloc[start:start + rows_per_page], page=page, total_pages=total_pages)


def display_table(table: pd.DataFrame, goals: Mapping[str, Goal] = DEFAULT_GOALS) -> pd.DataFrame:
    """Formatted copy with percent strings and human labels."""
    out = table.copy()
    for name in goals:
        out[name] = out[name].map(format_percent)
        out[f"{name}_Deviation"] = out[f"{name}_Deviation"].map(format_percent)
    return out.rename(columns=dict(table_columns(goals)))
