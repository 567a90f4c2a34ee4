# File: modules/errors.py


class KpiDashboardError(Exception):
    """Base error for the KPI dashboard modules."""


class DataLoadError(KpiDashboardError):
    """The tickets CSV could not be read or is missing required columns."""


class ConfigError(KpiDashboardError):
    """An environment override could not be applied."""
