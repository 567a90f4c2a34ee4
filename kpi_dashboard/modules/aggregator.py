# File: modules/aggregator.py
"""Driver x next-step KPI deviation aggregation.

Tickets of one agent inside a date window are grouped by
(driver, next step). Each group's KPI averages are compared with the goal
table; groups that miss at least one goal are ranked by ticket volume and
their volume is split across the missed KPIs for the stacked bar chart.
"""
import logging
import datetime as dt
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from kpi_dashboard.modules.config import DEFAULT_GOALS, Goal
from kpi_dashboard.modules.data_handler import AGENT_COL

logger = logging.getLogger(__name__)

TOP_N = 10
SAMPLE_SIZE = 3


@dataclass
class DriverCombination:
    driver: str
    next_step: str
    tickets: pd.DataFrame
    avg_kpis: Dict[str, float] = field(default_factory=dict)
    deviations: Dict[str, float] = field(default_factory=dict)
    missing_kpis: List[str] = field(default_factory=list)
    total_deviation: float = 0.0
    proportions: Dict[str, float] = field(default_factory=dict)

    @property
    def total_tickets(self) -> int:
        return len(self.tickets)

    @property
    def label(self) -> str:
        return f"{self.driver}\n{self.next_step}"

    @property
    def worst_kpi(self) -> Optional[str]:
        if not self.deviations:
            return None
        # max() keeps the first KPI on ties
        return max(self.deviations, key=lambda k: self.deviations[k])


@dataclass
class DeviationReport:
    combinations: List[DriverCombination]
    ranked: List[DriverCombination]
    plot_data: List[Dict]
    worst_kpi: Optional[str]
    selected_tickets: pd.DataFrame
    # groups with no measured deviation because some KPI had no data at all
    insufficient: List[DriverCombination] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.combinations


# ========================= FILTERING ========================= #
def _end_of_day(value) -> pd.Timestamp:
    return pd.Timestamp(value).normalize() + pd.Timedelta(days=1) - pd.Timedelta(milliseconds=1)


def filter_tickets(df: pd.DataFrame, agent: str,
                   start_date: Optional[dt.date] = None,
                   end_date: Optional[dt.date] = None) -> pd.DataFrame:
    """Tickets of ``agent`` whose contact date falls inside the window.

    Both bounds are inclusive; the end bound covers the whole day.
    Tickets without a contact date are dropped.
    """
    if df is None or df.empty:
        return pd.DataFrame(columns=[] if df is None else df.columns)
    mask = (df[AGENT_COL] == agent) & df["contact_date"].notna()
    if start_date:
        mask &= df["contact_date"] >= pd.Timestamp(start_date)
    if end_date:
        mask &= df["contact_date"] <= _end_of_day(end_date)
    return df[mask]


# ========================= GROUP METRICS ========================= #
def group_tickets(df: pd.DataFrame) -> List[Tuple[Tuple[str, str], pd.DataFrame]]:
    if df is None or df.empty:
        return []
    return [(key, group) for key, group in df.groupby(["driver", "next_step"], sort=False)]


def average_kpis(tickets: pd.DataFrame, goals: Mapping[str, Goal]) -> Dict[str, float]:
    """Mean of each KPI over its valid observations; NaN when there are none."""
    out = {}
    for name, goal in goals.items():
        values = pd.to_numeric(tickets[goal.column], errors="coerce").dropna()
        out[name] = float(values.mean()) if len(values) else float("nan")
    return out


def compute_deviations(avg_kpis: Mapping[str, float], goals: Mapping[str, Goal]) -> Dict[str, float]:
    deviations = {}
    for name, goal in goals.items():
        dev = goal.deviation(avg_kpis.get(name))
        if dev is not None and dev > 0:
            deviations[name] = dev
    return deviations


def compute_proportions(deviations: Mapping[str, float], total_deviation: float,
                        total_tickets: int) -> Dict[str, float]:
    if total_deviation <= 0:
        return {}
    return {k: (dev / total_deviation) * total_tickets for k, dev in deviations.items()}


def build_combination(driver: str, next_step: str, tickets: pd.DataFrame,
                      goals: Mapping[str, Goal]) -> DriverCombination:
    avg = average_kpis(tickets, goals)
    deviations = compute_deviations(avg, goals)
    total = float(sum(deviations.values()))
    return DriverCombination(
        driver=driver,
        next_step=next_step,
        tickets=tickets,
        avg_kpis=avg,
        deviations=deviations,
        missing_kpis=[k for k, v in avg.items() if np.isnan(v)],
        total_deviation=total,
        proportions=compute_proportions(deviations, total, len(tickets)),
    )


def rank_combinations(combinations: List[DriverCombination]) -> List[DriverCombination]:
    """Groups missing at least one goal, by descending volume (stable)."""
    flagged = [c for c in combinations if c.total_deviation > 0]
    return sorted(flagged, key=lambda c: c.total_tickets, reverse=True)


def bar_series(combinations: List[DriverCombination], kpis) -> List[Dict]:
    x = [c.label for c in combinations]
    return [
        {"name": kpi, "x": x, "y": [c.proportions.get(kpi, 0.0) for c in combinations]}
        for kpi in kpis
    ]


# ========================= REVIEW SAMPLE ========================= #
def select_review_tickets(combination: Optional[DriverCombination], goals: Mapping[str, Goal],
                          k: int = SAMPLE_SIZE,
                          rng: Optional[np.random.Generator] = None) -> pd.DataFrame:
    """Up to ``k`` random tickets of the group that fail its worst KPI.

    A ticket without a value for that KPI is read as 0.
    """
    if combination is None or combination.worst_kpi is None:
        return pd.DataFrame()
    goal = goals[combination.worst_kpi]
    values = pd.to_numeric(combination.tickets[goal.column], errors="coerce").fillna(0.0)
    failing = combination.tickets[values.map(goal.fails)]
    if failing.empty or k <= 0:
        return failing.iloc[0:0]
    rng = rng if rng is not None else np.random.default_rng()
    order = rng.permutation(len(failing))
    return failing.iloc[order[:k]]


# ========================= ENTRY POINT ========================= #
def aggregate(df: pd.DataFrame, agent: str,
              start_date: Optional[dt.date] = None,
              end_date: Optional[dt.date] = None,
              goals: Optional[Mapping[str, Goal]] = None,
              top_n: int = TOP_N,
              sample_size: int = SAMPLE_SIZE,
              rng: Optional[np.random.Generator] = None) -> DeviationReport:
    goals = dict(goals or DEFAULT_GOALS)
    agent_tickets = filter_tickets(df, agent, start_date, end_date)
    combinations = [
        build_combination(driver, next_step, group, goals)
        for (driver, next_step), group in group_tickets(agent_tickets)
    ]
    ranked = rank_combinations(combinations)
    top = ranked[:top_n]
    logger.debug(
        "agent=%s tickets=%d groups=%d flagged=%d",
        agent, len(agent_tickets), len(combinations), len(ranked),
    )

    head = ranked[0] if ranked else None
    return DeviationReport(
        combinations=top,
        ranked=ranked,
        plot_data=bar_series(top, list(goals)) if top else [],
        worst_kpi=head.worst_kpi if head else None,
        selected_tickets=select_review_tickets(head, goals, sample_size, rng),
        insufficient=[c for c in combinations if c.total_deviation <= 0 and c.missing_kpis],
    )
