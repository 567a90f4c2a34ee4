# File: app.py
import streamlit as st

from kpi_dashboard.modules import data_handler as dh
from kpi_dashboard.modules import views

APP_TITLE = "Dashboard de Drivers"


def main():
    settings = views.load_settings_or_stop()

    views.back_to_homepage("drivers_back_homepage")
    st.title(APP_TITLE)

    tickets = views.load_tickets_or_stop(settings.csv_path)
    agents = dh.unique_values(tickets, dh.AGENT_COL)
    if not agents:
        st.info("Por favor, selecione um atendente.")
        return

    min_date, max_date = dh.date_bounds(tickets)
    with st.sidebar:
        st.header("Filtros")
        # defaults to the first agent in file order
        agent = st.selectbox("Selecione o Atendente:", agents, key="drivers_agent")
        start_date = st.date_input("Data Inicial:", value=min_date, key="drivers_start")
        end_date = st.date_input("Data Final:", value=max_date, key="drivers_end")

    report = views.cached_report(
        tickets, agent, start_date, end_date,
        settings.goals, settings.top_n, settings.sample_size, settings.sample_seed,
    )

    if report.is_empty:
        st.info("Nenhum dado para exibir no gráfico.")
    else:
        fig = views.deviation_bar_figure(report.plot_data, agent)
        st.plotly_chart(fig, use_container_width=True)
    views.render_missing_kpis(report)

    views.render_review_tickets(report, agent)


if __name__ == "__main__":
    st.set_page_config(page_title=APP_TITLE, layout="wide")
    main()
