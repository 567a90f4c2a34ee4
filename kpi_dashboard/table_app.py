# File: table_app.py
import streamlit as st

from kpi_dashboard.modules import data_handler as dh
from kpi_dashboard.modules import kpi_table as kt
from kpi_dashboard.modules import views

APP_TITLE = "Tabela de KPIs por Driver e Next Step"


def _ensure_session_defaults():
    if "table_sort" not in st.session_state:
        st.session_state.table_sort = None
    if "table_page" not in st.session_state:
        st.session_state.table_page = 1


def _reset_page():
    st.session_state.table_page = 1


def main():
    settings = views.load_settings_or_stop()
    _ensure_session_defaults()

    views.back_to_homepage("table_back_homepage")
    st.title(APP_TITLE)

    tickets = views.load_tickets_or_stop(settings.csv_path)
    agents = dh.unique_values(tickets, dh.AGENT_COL)
    if not agents:
        st.info("Por favor, selecione um atendente.")
        return

    col_a, col_b, col_c, col_d = st.columns(4)
    with col_a:
        agent = st.selectbox("Atendente", agents, key="table_agent", on_change=_reset_page)
    with col_b:
        driver = st.selectbox("Driver", [kt.ALL] + dh.unique_values(tickets, "driver"),
                              format_func=lambda v: "Todos" if v == kt.ALL else v,
                              key="table_driver", on_change=_reset_page)
    with col_c:
        next_step = st.selectbox("Next Step", [kt.ALL] + dh.unique_values(tickets, "next_step"),
                                 format_func=lambda v: "Todos" if v == kt.ALL else v,
                                 key="table_next_step", on_change=_reset_page)
    with col_d:
        rows_per_page = st.selectbox("Linhas por página", kt.ROWS_PER_PAGE_OPTIONS,
                                     index=kt.ROWS_PER_PAGE_OPTIONS.index(kt.DEFAULT_ROWS_PER_PAGE),
                                     key="table_rows_per_page", on_change=_reset_page)

    table = kt.build_table(tickets, agent, driver, next_step, settings.goals)
    if table.empty:
        st.info("Nenhum dado disponível para os filtros selecionados.")
        return

    # sort controls: clicking the same column twice flips the direction
    labels = dict(kt.table_columns(settings.goals))
    sort_cols = st.columns([3, 1])
    with sort_cols[0]:
        sort_key = st.selectbox("Ordenar por", list(labels), format_func=labels.get, key="table_sort_key")
    with sort_cols[1]:
        st.write("")
        if st.button("Ordenar ▲▼", key="table_sort_btn"):
            st.session_state.table_sort = kt.next_sort(st.session_state.table_sort, sort_key)
            _reset_page()

    current = st.session_state.table_sort
    if current:
        arrow = "▲" if current[1] == "asc" else "▼"
        st.caption(f"Ordenado por {labels.get(current[0], current[0])} {arrow}")

    page = kt.paginate(kt.sort_rows(table, current), st.session_state.table_page, rows_per_page)
    st.dataframe(views.styled_table(page.rows, settings.goals), use_container_width=True, hide_index=True)

    prev_col, info_col, next_col = st.columns([1, 2, 1])
    with prev_col:
        if st.button("Anterior", disabled=page.page <= 1, key="table_prev"):
            st.session_state.table_page = page.page - 1
            st.rerun()
    with info_col:
        st.markdown(f"Página {page.page} de {page.total_pages}")
    with next_col:
        if st.button("Próxima", disabled=page.page >= page.total_pages, key="table_next"):
            st.session_state.table_page = page.page + 1
            st.rerun()

    views.render_download_button(kt.sort_rows(table, current), settings.goals, agent)


if __name__ == "__main__":
    st.set_page_config(page_title=APP_TITLE, layout="wide")
    main()
