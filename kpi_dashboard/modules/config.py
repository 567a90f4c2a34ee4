# File: modules/config.py
import os
import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from dotenv import load_dotenv

from kpi_dashboard.modules.errors import ConfigError

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
DEFAULT_CSV_PATH = os.path.join(BASE_DIR, "data", "tickets.csv")

# ========================= KPI GOALS ========================= #
KPIS: Tuple[str, ...] = ("CSAT", "CRES", "FCR", "RCR", "Hangup")


@dataclass(frozen=True)
class Goal:
    name: str
    target: float
    higher_is_better: bool = True

    @property
    def column(self) -> str:
        return f"% {self.name}"

    def deviation(self, avg: Optional[float]) -> Optional[float]:
        """Shortfall (or excess for lower-is-better KPIs) of ``avg`` against the target.

        Returns None when ``avg`` is missing, 0.0 when the goal is met.
        """
        if avg is None or avg != avg:
            return None
        gap = self.target - avg if self.higher_is_better else avg - self.target
        return max(gap, 0.0)

    def fails(self, value: Optional[float]) -> bool:
        if value is None or value != value:
            return False
        if self.higher_is_better:
            return value < self.target
        return value > self.target


DEFAULT_GOALS: Dict[str, Goal] = {
    "CSAT": Goal("CSAT", 93.5),
    "CRES": Goal("CRES", 83.0),
    "FCR": Goal("FCR", 93.5),
    "RCR": Goal("RCR", 18.2, higher_is_better=False),
    "Hangup": Goal("Hangup", 80.0),
}


def _env_float(env: Mapping[str, str], key: str) -> Optional[float]:
    raw = env.get(key)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return float(str(raw).replace(",", ".").strip())
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}")


def _env_int(env: Mapping[str, str], key: str) -> Optional[int]:
    raw = env.get(key)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


def load_goals(env: Optional[Mapping[str, str]] = None) -> Dict[str, Goal]:
    """Default goal table with ``KPI_GOAL_<NAME>`` overrides applied."""
    env = os.environ if env is None else env
    goals = {}
    for name in KPIS:
        base = DEFAULT_GOALS[name]
        target = _env_float(env, f"KPI_GOAL_{name.upper()}")
        goals[name] = base if target is None else Goal(name, target, base.higher_is_better)
    return goals


# ========================= SETTINGS ========================= #
@dataclass(frozen=True)
class Settings:
    csv_path: str = DEFAULT_CSV_PATH
    top_n: int = 10
    sample_size: int = 3
    sample_seed: Optional[int] = None
    log_level: str = "INFO"
    goals: Dict[str, Goal] = field(default_factory=lambda: dict(DEFAULT_GOALS))


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    top_n = _env_int(env, "KPI_TOP_N")
    sample_size = _env_int(env, "KPI_SAMPLE_SIZE")
    if top_n is not None and top_n < 1:
        raise ConfigError("KPI_TOP_N must be at least 1")
    if sample_size is not None and sample_size < 0:
        raise ConfigError("KPI_SAMPLE_SIZE cannot be negative")
    return Settings(
        csv_path=env.get("TICKETS_CSV") or DEFAULT_CSV_PATH,
        top_n=top_n if top_n is not None else 10,
        sample_size=sample_size if sample_size is not None else 3,
        sample_seed=_env_int(env, "KPI_SAMPLE_SEED"),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        goals=load_goals(env),
    )


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        root.setLevel(level)
