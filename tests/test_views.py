import datetime as dt

import numpy as np
import pytest

from kpi_dashboard.modules import aggregator as agg
from kpi_dashboard.modules import kpi_table as kt
from kpi_dashboard.modules import trend
from kpi_dashboard.modules import views
from kpi_dashboard.modules.config import DEFAULT_GOALS

from conftest import make_tickets, met_row


@pytest.fixture
def report():
    rows = [met_row(driver="A", csat="50%", rcr="40%") for _ in range(3)]
    rows += [met_row(driver="B", fcr="60%")]
    return agg.aggregate(make_tickets(rows), "Ana", rng=np.random.default_rng(0))


def test_deviation_bar_figure_stacks_one_trace_per_kpi(report):
    fig = views.deviation_bar_figure(report.plot_data, "Ana")
    assert fig.layout.barmode == "stack"
    assert [t.name for t in fig.data] == list(DEFAULT_GOALS)
    csat = next(t for t in fig.data if t.name == "CSAT")
    assert list(csat.x) == ["A\nEstorno", "B\nEstorno"]
    assert sum(t.y[0] for t in fig.data) == pytest.approx(3)
    assert "Ana" in fig.layout.title.text


def test_trend_figure_draws_goal_line():
    series = trend.TrendSeries(dates=[dt.date(2024, 10, 1), dt.date(2024, 10, 2)], averages=[80.0, 90.0], goal=93.5)
    fig = views.trend_figure(series, "% CSAT")
    assert list(fig.data[0].y) == [80.0, 90.0]
    assert len(fig.layout.shapes) == 1
    assert fig.layout.shapes[0].y0 == 93.5


def test_table_to_excel_is_xlsx():
    table = kt.build_table(make_tickets([met_row(csat="80%")]), "Ana")
    data = views.table_to_excel(table, DEFAULT_GOALS)
    assert data[:2] == b"PK"


def test_styled_table_shades_deviation_cells():
    table = kt.build_table(make_tickets([met_row(csat="43.5%")]), "Ana")
    styler = views.styled_table(table, DEFAULT_GOALS)
    html = styler.to_html()
    assert "hsl(0, 100%, 50%)" in html
    assert "#ffffff" in html


class _Stopped(Exception):
    pass


def _stop():
    raise _Stopped()


def test_load_settings_or_stop_reports_bad_config(monkeypatch):
    shown = []
    monkeypatch.setenv("KPI_TOP_N", "abc")
    monkeypatch.setattr(views.st, "error", shown.append)
    monkeypatch.setattr(views.st, "exception", shown.append)
    monkeypatch.setattr(views.st, "stop", _stop)
    with pytest.raises(_Stopped):
        views.load_settings_or_stop()
    assert shown[0] == "Configuração inválida."
    assert "KPI_TOP_N" in str(shown[1])


def test_load_settings_or_stop_returns_settings(monkeypatch):
    monkeypatch.setenv("KPI_TOP_N", "5")
    settings = views.load_settings_or_stop()
    assert settings.top_n == 5
