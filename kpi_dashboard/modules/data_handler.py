# File: modules/data_handler.py
import re
import logging
import datetime as dt
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from kpi_dashboard.modules.config import KPIS
from kpi_dashboard.modules.errors import DataLoadError

logger = logging.getLogger(__name__)

UNDEFINED_DRIVER = "Indefinido"
UNDEFINED_NEXT_STEP = "Não Definido"
DEFAULT_AGENT = "Atendente Padrão"

AGENT_COL = "Agent Name"
DRIVER_L1_COL = "Driver Level1"
DRIVER_L2_COL = "Driver Level2"
NEXT_STEP_COL = "Next Steps - Reason (L2)"
DATE_COL = "Day(Contact Date)"
AHT_COL = "AHT"
KPI_COLUMNS = [f"% {k}" for k in KPIS]

REQUIRED_COLUMNS = [AGENT_COL, DRIVER_L1_COL, DRIVER_L2_COL, NEXT_STEP_COL, DATE_COL] + KPI_COLUMNS + [AHT_COL]
# columns computed by the loader; same-named columns in the export are replaced
DERIVED_COLUMNS = ["id", "agent_missing", "driver", "next_step", "contact_date"]

# ========================= UTILS ========================= #
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_ISO_DATE = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}")
_DMY_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def _norm(s) -> Optional[str]:
    if s is None:
        return None
    if isinstance(s, (int, float)) and not pd.isna(s):
        return str(s).strip()
    if isinstance(s, str):
        return s.strip() or None
    return None


def _leading_float(text: str) -> Optional[float]:
    m = _LEADING_NUMBER.match(text)
    if not m:
        return None
    return float(m.group(0))


def parse_number(value) -> Optional[float]:
    """Parse a KPI percentage cell.

    Numbers pass through untouched. Strings lose their ``%`` sign and use
    ``.`` as decimal separator; fractions in ``[0, 1]`` are scaled to
    percentages. Anything unparseable becomes None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)):
        return None if pd.isna(value) else float(value)
    if not isinstance(value, str):
        return None
    normalized = value.replace("%", "").replace(",", ".", 1).strip()
    if normalized == "":
        return None
    parsed = _leading_float(normalized)
    if parsed is None:
        return None
    if 0 <= parsed <= 1:
        parsed *= 100
    return parsed


def parse_duration(value) -> Optional[float]:
    if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
        return None if pd.isna(value) else round(float(value), 2)
    text = _norm(value)
    if not text:
        return None
    parsed = _leading_float(text.replace(",", ".", 1))
    return None if parsed is None else round(parsed, 2)


def parse_date(value) -> Optional[pd.Timestamp]:
    """ISO dates first, then ``dd/mm/yyyy``; anything else is None."""
    if isinstance(value, (dt.date, pd.Timestamp)):
        return pd.Timestamp(value)
    text = _norm(value)
    if not text:
        return None
    if _ISO_DATE.match(text):
        ts = pd.to_datetime(text, errors="coerce")
        if pd.isna(ts):
            return None
        if ts.tzinfo is not None:
            ts = ts.tz_convert(None)
        return ts
    m = _DMY_DATE.match(text)
    if m:
        day, month, year = (int(x) for x in m.groups())
        try:
            return pd.Timestamp(year=year, month=month, day=day)
        except ValueError:
            return None
    return None


def pick_first_available_column(df: pd.DataFrame, candidates: List[str]) -> Optional[str]:
    def norm(s: str) -> str:
        return str(s).lower().strip()

    def norm_simple(s: str) -> str:
        return re.sub(r"[^a-z0-9]", "", norm(s))

    lower_map, simple_map = {}, {}
    for original in df.columns:
        lower_map.setdefault(norm(original), original)
        simple_map.setdefault(norm_simple(original), original)

    for cand in candidates:
        if norm(cand) in lower_map:
            return lower_map[norm(cand)]
    for cand in candidates:
        if norm_simple(cand) in simple_map:
            return simple_map[norm_simple(cand)]
    return None


def _resolve_columns(df: pd.DataFrame) -> Dict[str, str]:
    resolved, missing = {}, []
    for col in REQUIRED_COLUMNS:
        found = pick_first_available_column(df, [col])
        if found is None:
            missing.append(col)
        else:
            resolved[found] = col
    if missing:
        raise DataLoadError(f"Missing required columns: {', '.join(missing)}")
    return resolved


# ========================= LOADING ========================= #
def normalize_tickets(raw: pd.DataFrame) -> pd.DataFrame:
    """Turn raw CSV text columns into the typed ticket frame."""
    df = raw.copy()
    df.columns = [str(c).strip() for c in df.columns]
    df = df.rename(columns=_resolve_columns(df))
    df = df.drop(columns=[c for c in DERIVED_COLUMNS if c in df.columns]).reset_index(drop=True)

    agent = df[AGENT_COL].map(_norm)
    df["agent_missing"] = agent.isna()
    df[AGENT_COL] = agent.fillna(DEFAULT_AGENT)
    for col in (DRIVER_L1_COL, DRIVER_L2_COL):
        df[col] = df[col].map(_norm).fillna(UNDEFINED_DRIVER)
    df[NEXT_STEP_COL] = df[NEXT_STEP_COL].map(_norm).fillna(UNDEFINED_NEXT_STEP)

    for col in KPI_COLUMNS:
        df[col] = pd.to_numeric(df[col].map(parse_number), errors="coerce").astype(float)
    df[AHT_COL] = pd.to_numeric(df[AHT_COL].map(parse_duration), errors="coerce").astype(float)

    df["driver"] = df[DRIVER_L2_COL]
    df["next_step"] = df[NEXT_STEP_COL]
    df["contact_date"] = pd.to_datetime(df[DATE_COL].map(parse_date), errors="coerce")
    df.insert(0, "id", np.arange(1, len(df) + 1))

    undated = int(df["contact_date"].isna().sum())
    if undated:
        logger.debug("%d tickets have no parseable contact date", undated)
    return df


def load_tickets(source) -> pd.DataFrame:
    """Read the tickets CSV (path or file-like) and normalize it."""
    try:
        raw = pd.read_csv(source, dtype=str, keep_default_na=False, skipinitialspace=True)
    except FileNotFoundError:
        raise DataLoadError(f"Tickets file not found: {source}")
    except OSError as e:
        raise DataLoadError(f"Could not read tickets file {source}: {e}") from e
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Could not parse tickets file: {e}") from e
    df = normalize_tickets(raw)
    logger.info("Loaded %d tickets for %d agents", len(df), df[AGENT_COL].nunique())
    return df


# ========================= OPTIONS ========================= #
def date_bounds(df: pd.DataFrame) -> Tuple[Optional[dt.date], Optional[dt.date]]:
    if df is None or df.empty:
        return None, None
    dates = df["contact_date"].dropna()
    if dates.empty:
        return None, None
    return dates.min().date(), dates.max().date()


def unique_values(df: pd.DataFrame, column: str, sort: bool = False) -> List[str]:
    if df is None or df.empty or column not in df.columns:
        return []
    values = list(dict.fromkeys(df[column].dropna().astype(str)))
    return sorted(values) if sort else values
