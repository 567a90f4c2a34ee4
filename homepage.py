# homepage.py
import streamlit as st


def _app_card(title: str, description: str, target: str, key: str):
    st.subheader(title)
    st.markdown(description)
    if st.button(f"Abrir {title}", key=key):
        st.session_state["current_app"] = target
        st.rerun()


def main():
    # DO NOT call st.set_page_config here.
    st.title("📊 Dashboard - Drivers e KPIs")
    st.markdown("Visualize os drivers e KPIs em um dashboard dinâmico.")

    col1, col2 = st.columns(2)
    with col1:
        _app_card("Dashboard de Drivers",
                  "Combinações Driver + Next Step com desvio de meta e tickets para escuta.",
                  "Drivers_Dashboard", "btn_drivers")
    with col2:
        _app_card("Tabela de KPIs",
                  "Médias e desvios por combinação, com ordenação e paginação.",
                  "KPI_Table", "btn_table")

    col3, _ = st.columns([1, 1])
    with col3:
        _app_card("Tendência de Indicadores",
                  "Média diária de cada indicador comparada com a meta.",
                  "Trend_Dashboard", "btn_trend")

    st.caption("© 2024 - Dashboard")
