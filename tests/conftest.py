import pandas as pd
import pytest

from kpi_dashboard.modules import data_handler as dh

HEADER = [
    "Agent Name", "Driver Level1", "Driver Level2", "Next Steps - Reason (L2)",
    "Day(Contact Date)", "% CSAT", "% CRES", "% FCR", "% RCR", "% Hangup", "AHT",
]

# every KPI comfortably inside its goal
MET = {"csat": "99%", "cres": "95%", "fcr": "99%", "rcr": "5%", "hangup": "95%"}


def row(agent="Ana", driver="Fatura", next_step="Estorno", date="2024-10-01",
        csat="", cres="", fcr="", rcr="", hangup="", aht="300", level1="Cobrança"):
    return {
        "Agent Name": agent,
        "Driver Level1": level1,
        "Driver Level2": driver,
        "Next Steps - Reason (L2)": next_step,
        "Day(Contact Date)": date,
        "% CSAT": csat,
        "% CRES": cres,
        "% FCR": fcr,
        "% RCR": rcr,
        "% Hangup": hangup,
        "AHT": aht,
    }


def met_row(**overrides):
    values = dict(MET)
    values.update(overrides)
    return row(**values)


def make_tickets(rows):
    return dh.normalize_tickets(pd.DataFrame(rows, columns=HEADER))


@pytest.fixture
def tickets():
    return make_tickets([
        met_row(driver="Fatura", next_step="Estorno", csat="80%"),
        met_row(driver="Fatura", next_step="Estorno", csat="70%"),
        met_row(driver="Sinal", next_step="Visita", rcr="30%", date="2024-10-02"),
        met_row(driver="Fatura", next_step="Estorno", csat="90%", date="2024-10-03"),
        met_row(driver="Cadastro", next_step="Endereço", date="2024-10-03"),
        met_row(agent="Bruno", driver="Sinal", next_step="Reset", csat="10%"),
        met_row(driver="Sinal", next_step="Visita", rcr="40%", date="not a date"),
    ])
