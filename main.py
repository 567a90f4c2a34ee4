# main.py
import streamlit as st

# ---- Page config: must be FIRST and ONLY once in the whole app ----
st.set_page_config(page_title="Dashboard - Drivers e KPIs", layout="wide")

import homepage
import kpi_dashboard.app as drivers_app
import kpi_dashboard.table_app as table_app
import kpi_dashboard.trend_app as trend_app

APPS = {
    "Homepage": homepage.main,
    "Drivers_Dashboard": drivers_app.main,
    "KPI_Table": table_app.main,
    "Trend_Dashboard": trend_app.main,
}

# ---- Session state navigation setup ----
if "current_app" not in st.session_state:
    st.session_state["current_app"] = "Homepage"

APPS.get(st.session_state["current_app"], homepage.main)()
