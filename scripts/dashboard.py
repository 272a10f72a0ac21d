#!/usr/bin/env python3
"""ASHA Dashboard web UI.

Talks to the dashboard HTTP API (asha-dashboard serve).

Run with: streamlit run scripts/dashboard.py
"""
from __future__ import annotations

import os
from typing import Any

import httpx
import pandas as pd
import plotly.express as px
import streamlit as st

API_URL = os.environ.get("ASHA_DASHBOARD_API_URL", "http://localhost:8080/api/v1")

# Bulk calls resolve only once every phone has been answered or rung out
CALL_TIMEOUT = httpx.Timeout(10.0, read=None)

OUTCOME_COLORS = {
    "answered": "green",
    "not_answered": "orange",
    "pressed_2": "red",
}


@st.cache_resource
def get_client() -> httpx.Client:
    """Shared HTTP client."""
    return httpx.Client(base_url=API_URL, timeout=10.0)


def api(method: str, path: str, **kwargs: Any) -> httpx.Response:
    """Authenticated API request."""
    headers = {}
    token = st.session_state.get("token")
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return get_client().request(method, path, headers=headers, **kwargs)


def error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("message", response.text)
    except ValueError:
        return response.text


def render_login() -> None:
    """Login form; stores the bearer token in the session."""
    st.title("ASHA Login")

    with st.form("login"):
        asha_id = st.text_input("ASHA ID")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Login")

    if submitted:
        try:
            response = api("POST", "/auth/login", json={"asha_id": asha_id, "password": password})
        except httpx.HTTPError as e:
            st.error(f"Dashboard API unreachable: {e}")
            return

        if response.status_code == 200:
            data = response.json()
            st.session_state["token"] = data["access_token"]
            st.session_state["asha"] = data["asha"]
            st.rerun()
        else:
            st.error(error_message(response))


def render_call_report(report: dict[str, Any]) -> None:
    if not report.get("dialed"):
        st.info("No mothers to call")
        return

    outcomes = pd.DataFrame(
        [{"mother_id": pid, "outcome": outcome} for pid, outcome in report["outcomes"].items()]
    )
    if not outcomes.empty:
        st.dataframe(outcomes, use_container_width=True)

    if report.get("failures"):
        st.warning(f"Calls that failed: {', '.join(report['failures'])}")
    if report.get("to_flag"):
        st.success(f"Flagged for follow-up: {', '.join(report['to_flag'])}")


def render_dashboard(view: dict[str, Any]) -> None:
    st.title("ASHA Dashboard")
    st.markdown(f"**{view['header']}**")

    mothers = pd.DataFrame(view["mothers"])
    logs = pd.DataFrame(view["call_logs"])

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Assigned Mothers", view["roster_count"])
    with col2:
        st.metric("Flagged", len(view["flagged"]))
    with col3:
        visited = int(mothers["visited"].sum()) if not mothers.empty else 0
        st.metric("Visited", visited)

    # =========================================================================
    # Actions
    # =========================================================================
    col1, col2 = st.columns(2)

    with col1:
        if st.button("Call All", type="primary", disabled=mothers.empty):
            with st.spinner("Calling all mothers..."):
                response = api("POST", "/call-all", timeout=CALL_TIMEOUT)
            if response.status_code == 200:
                st.session_state["last_report"] = response.json()
                st.rerun()
            else:
                st.error(error_message(response))

    with col2:
        response = api("GET", "/export.csv")
        if response.status_code == 200:
            disposition = response.headers.get("content-disposition", "")
            filename = disposition.split("filename=")[-1].strip('"') or "mothers-list.csv"
            st.download_button("Export CSV", response.content, file_name=filename, mime="text/csv")

    if "last_report" in st.session_state:
        st.subheader("Last Call All")
        render_call_report(st.session_state["last_report"])

    # =========================================================================
    # Flagged Mothers
    # =========================================================================
    st.header("Flagged Mothers")
    if view["flagged"]:
        st.dataframe(
            pd.DataFrame(view["flagged"])[["id", "name", "phone", "gestation_weeks", "notes"]],
            use_container_width=True,
        )
    else:
        st.info("No flagged mothers")

    # =========================================================================
    # Roster
    # =========================================================================
    st.header("All Mothers")
    if not mothers.empty:
        st.dataframe(
            mothers[["id", "name", "age", "phone", "last_anc_date",
                     "gestation_weeks", "flagged", "visited"]],
            use_container_width=True,
            column_config={
                "id": "ID",
                "name": "Name",
                "age": "Age",
                "phone": "Phone",
                "last_anc_date": "Last ANC",
                "gestation_weeks": "Weeks",
                "flagged": "Flagged",
                "visited": "Visited",
            },
        )

        names = dict(zip(mothers["id"], mothers["name"]))
        selected = st.selectbox("Open profile", list(names), format_func=lambda pid: names[pid])
        if selected:
            render_profile(selected)
    else:
        st.info("No mothers assigned")

    # =========================================================================
    # Call Logs
    # =========================================================================
    st.header("Recent IVR Call Logs")
    if not logs.empty:
        col1, col2 = st.columns([2, 1])
        with col1:
            st.dataframe(
                logs[["timestamp", "mother_name", "outcome"]],
                use_container_width=True,
            )
        with col2:
            counts = logs["outcome"].value_counts().reset_index()
            counts.columns = ["outcome", "count"]
            fig = px.pie(
                counts,
                values="count",
                names="outcome",
                title="Outcomes",
                color="outcome",
                color_discrete_map=OUTCOME_COLORS,
            )
            st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("No call logs")


def render_profile(mother_id: str) -> None:
    response = api("GET", f"/mothers/{mother_id}")
    if response.status_code != 200:
        st.error(error_message(response))
        return
    mother = response.json()

    st.subheader(mother["name"])
    col1, col2 = st.columns(2)
    with col1:
        st.markdown(f"**Age:** {mother['age']}")
        st.markdown(f"**Phone:** {mother['phone']}")
        st.markdown(f"**Address:** {mother['address']}")
    with col2:
        st.markdown(f"**Last ANC Date:** {mother['last_anc_date_display']}")
        st.markdown(f"**Gestation Weeks:** {mother['gestation_weeks']}")
        st.markdown(f"**Status:** {mother['visit_status']}")
    st.markdown(f"**Notes:** {mother['notes_display']}")

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("Mark Visited", disabled=mother["visited"] and not mother["flagged"]):
            api("POST", f"/mothers/{mother_id}/visited")
            st.rerun()
    with col2:
        if st.button(mother["flag_action"]):
            api("POST", f"/mothers/{mother_id}/flag/toggle")
            st.rerun()
    with col3:
        if st.button("Call"):
            with st.spinner(f"Calling {mother['name']}..."):
                result = api("POST", f"/mothers/{mother_id}/call", timeout=CALL_TIMEOUT)
            if result.status_code == 200:
                data = result.json()
                st.info(f"Outcome: {data['outcome'] or 'call failed'}")
            else:
                st.error(error_message(result))


def main():
    """Main dashboard application."""
    st.set_page_config(
        page_title="ASHA Dashboard",
        layout="wide",
    )

    if "token" not in st.session_state:
        render_login()
        return

    st.sidebar.markdown(f"Logged in as **{st.session_state['asha']['name']}**")
    if st.sidebar.button("Logout"):
        st.session_state.clear()
        st.rerun()

    response = api("GET", "/dashboard")
    if response.status_code == 401:
        st.session_state.clear()
        st.rerun()
    if response.status_code != 200:
        st.error(error_message(response))
        return

    render_dashboard(response.json())


if __name__ == "__main__":
    main()
