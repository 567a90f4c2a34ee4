import pandas as pd
import pytest

from kpi_dashboard.modules import kpi_table as kt

from conftest import make_tickets, met_row


@pytest.fixture
def table_tickets():
    return make_tickets([
        met_row(driver="Fatura", next_step="Estorno", csat="80%"),
        met_row(driver="Fatura", next_step="Estorno", csat="90%", date=""),
        met_row(driver="Sinal", next_step="Visita", rcr="30%", cres=""),
        met_row(driver="Sinal", next_step="Reset"),
        met_row(agent="Bruno", driver="Fatura", next_step="Estorno", csat="10%"),
    ])


def test_build_table_one_row_per_group(table_tickets):
    table = kt.build_table(table_tickets, "Ana")
    assert table[["driver", "next_step", "volume"]].values.tolist() == [
        ["Fatura", "Estorno", 2],
        ["Sinal", "Visita", 1],
        ["Sinal", "Reset", 1],
    ]


def test_build_table_averages_and_deviations(table_tickets):
    table = kt.build_table(table_tickets, "Ana").set_index("driver", drop=False)
    fatura = table.iloc[0]
    assert fatura["CSAT"] == pytest.approx(85.0)
    assert fatura["CSAT_Deviation"] == pytest.approx(8.5)
    # goal met shows a zero deviation, not a missing one
    assert fatura["FCR_Deviation"] == 0

    visita = table.iloc[1]
    assert visita["RCR_Deviation"] == pytest.approx(11.8)
    assert pd.isna(visita["CRES"])
    assert pd.isna(visita["CRES_Deviation"])


def test_build_table_filters(table_tickets):
    by_driver = kt.build_table(table_tickets, "Ana", driver="Sinal")
    assert by_driver["next_step"].tolist() == ["Visita", "Reset"]
    both = kt.build_table(table_tickets, "Ana", driver="Sinal", next_step="Reset")
    assert both["volume"].tolist() == [1]


def test_build_table_empty_inputs(table_tickets):
    assert kt.build_table(table_tickets, "").empty
    empty = kt.build_table(table_tickets, "Nobody")
    assert empty.empty
    assert list(empty.columns)[:3] == ["driver", "next_step", "volume"]


def test_next_sort_toggles():
    first = kt.next_sort(None, "volume")
    assert first == ("volume", "asc")
    assert kt.next_sort(first, "volume") == ("volume", "desc")
    assert kt.next_sort(("volume", "desc"), "volume") == ("volume", "asc")
    assert kt.next_sort(("volume", "asc"), "driver") == ("driver", "asc")


def test_sort_keeps_missing_last():
    table = pd.DataFrame({"driver": ["a", "b", "c"], "CRES": [50.0, None, 70.0]})
    asc = kt.sort_rows(table, ("CRES", "asc"))
    desc = kt.sort_rows(table, ("CRES", "desc"))
    assert asc["driver"].tolist() == ["a", "c", "b"]
    assert desc["driver"].tolist() == ["c", "a", "b"]


def test_sort_strings_and_noop(table_tickets):
    table = kt.build_table(table_tickets, "Ana")
    assert kt.sort_rows(table, ("next_step", "asc"))["next_step"].tolist() == ["Estorno", "Reset", "Visita"]
    assert kt.sort_rows(table, None) is table
    assert kt.sort_rows(table, ("unknown", "asc")) is table


def test_paginate():
    table = pd.DataFrame({"n": range(23)})
    page = kt.paginate(table, 3, 10)
    assert page.total_pages == 3
    assert page.rows["n"].tolist() == [20, 21, 22]

    clamped = kt.paginate(table, 9, 10)
    assert clamped.page == 3
    assert kt.paginate(table, 0, 5).page == 1


def test_paginate_empty_and_invalid():
    page = kt.paginate(pd.DataFrame({"n": []}), 1, 10)
    assert page.total_pages == 0
    assert page.page == 1
    with pytest.raises(ValueError):
        kt.paginate(pd.DataFrame({"n": [1]}), 1, 0)


@pytest.mark.parametrize("deviation, expected", [
    (None, None),
    (float("nan"), None),
    (0, "#ffffff"),
    (25, "hsl(0, 100%, 75%)"),
    (100, "hsl(0, 100%, 50%)"),
])
def test_deviation_color(deviation, expected):
    assert kt.deviation_color(deviation) == expected


def test_display_table_formats_percentages(table_tickets):
    shown = kt.display_table(kt.build_table(table_tickets, "Ana"))
    assert shown["% CSAT"].iloc[0] == "85.00%"
    assert shown["Desvio CSAT"].iloc[0] == "8.50%"
    assert shown["% CRES"].iloc[1] == ""
    assert list(shown.columns)[:4] == ["Driver", "Next Step", "Volume", "% CSAT"]
