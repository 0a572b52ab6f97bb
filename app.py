import html

import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from st_aggrid import AgGrid, GridOptionsBuilder

from backend.config import settings
from backend.logging_config import setup_logging
from backend.models.session import SessionState
from backend.services.plot_data import build_tracker_payload
from backend.services.timetable_service import (
    TimetableNotFoundError,
    get_timetable_service,
    load_for_date,
)
from utils import format_time

setup_logging()

st.set_page_config(layout="wide", page_title="Live train tracker")

debug = st.query_params.get("debug") == "true"

if "tracker" not in st.session_state:
    st.session_state.tracker = SessionState()
    st.session_state.load_error = None
session: SessionState = st.session_state.tracker


def load_timetable(force: bool = False) -> None:
    service = get_timetable_service()
    if force:
        service.clear_cache()
    try:
        load_for_date(session, service, debug=debug, force=force)
        st.session_state.load_error = None
    except TimetableNotFoundError:
        st.session_state.load_error = "missing"
    except (OSError, ValueError) as exc:
        st.session_state.load_error = str(exc)


if not session.loaded and st.session_state.load_error is None:
    load_timetable()

# ===================== Header / status =====================

@st.fragment(run_every=settings.HEALTH_REFRESH_SECONDS)
def system_status():
    _, healthy = get_timetable_service().health_status()
    if healthy:
        st.success("System status: online")
    else:
        st.error("System status: unavailable")


with st.sidebar:
    st.header("Live train tracker")
    system_status()
    if debug:
        st.button("Reload timetable", on_click=load_timetable, kwargs={"force": True})

if session.timetable is not None:
    if session.timetable.name:
        st.title(session.timetable.name)
    if session.timetable.date:
        st.caption(session.timetable.date)

if st.session_state.load_error and session.loaded:
    # a failed reload keeps the timetable that was already loaded
    problem = "no timetable found" if st.session_state.load_error == "missing" else st.session_state.load_error
    st.warning(f"Reload failed ({problem}), showing the previously loaded timetable.")
elif st.session_state.load_error == "missing":
    st.markdown("## 🚂 No Timetable Available")
    st.write("There is no scheduled timetable for today.")
    st.info("No train services scheduled for today")
    st.stop()
elif st.session_state.load_error:
    st.markdown("## ⚠️ Error Loading Timetable")
    st.write("Unable to load the timetable data.")
    st.caption(st.session_state.load_error)
    st.stop()

# ===================== Time controls =====================

if debug:
    c_down, c_up, c_live = st.columns([1, 1, 1])
    c_down.button("−5 min", on_click=session.clock.step, args=(-5,), use_container_width=True)
    c_up.button("+5 min", on_click=session.clock.step, args=(5,), use_container_width=True)
    c_live.button("Live", on_click=session.clock.go_live, disabled=session.clock.live,
                  use_container_width=True)

# ===================== Diagrams =====================

def _track_figure(payload: dict) -> go.Figure:
    """Vertical station diagram: station i at y=i, sections in between."""
    stations = payload["stations"]
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=[0] * len(stations), y=list(range(len(stations))),
        mode="lines+markers", line=dict(color="#555", width=4),
        marker=dict(size=12, color="#ddd"), hoverinfo="skip", showlegend=False,
    ))

    y_of = {name: i for i, name in enumerate(stations)}
    for slot in payload["layout"]:
        base = y_of[slot["name"]] if slot["type"] == "station" else y_of[slot["from"]]
        for m in slot["trains"]:
            y = base if slot["type"] == "station" else base + m["percentage"] / 100
            fig.add_trace(go.Scatter(
                x=[0.15 if m["direction"] == "northbound" else -0.15], y=[y],
                mode="markers+text",
                marker=dict(size=16, color=m["color"], symbol="square"),
                text=[f"{m['icon']} {m['train_number']} {m['arrow']}"],
                textposition="middle right" if m["direction"] == "northbound" else "middle left",
                hovertext=m["train_number"], hoverinfo="text", showlegend=False,
            ))

    fig.update_layout(
        xaxis=dict(visible=False, range=[-1.5, 1.5]),
        yaxis=dict(autorange="reversed", tickmode="array",
                   tickvals=list(range(len(stations))), ticktext=stations, showgrid=False),
        height=120 + 70 * len(stations),
        margin=dict(l=160, r=20, t=20, b=20),
        plot_bgcolor="white",
    )
    return fig


def _time_space_figure(payload: dict) -> go.Figure:
    stations = payload["stations"]
    colors = payload["train_colors"]
    fig = go.Figure()
    for s in payload["plot_series"]:
        pts = s["points"]
        fig.add_trace(go.Scatter(
            x=[p["value"][0] for p in pts],
            y=[p["value"][1] for p in pts],
            mode="lines+markers",
            name=s["name"],
            line=dict(color=colors.get(s["train"], "#888888"), width=2),
            marker=dict(size=5),
            text=[f"{s['name']}<br>{format_time(p['value'][0])} {p['station']}"
                  + ("" if p["stopsAt"] else " (pass)") for p in pts],
            hoverinfo="text",
            opacity=0.6,
        ))

    now = payload["minutes"]
    fig.add_vline(x=now, line_width=2, line_dash="dash", line_color="red")
    for p in payload["positions"]:
        if p["y"] is None:
            continue
        fig.add_trace(go.Scatter(
            x=[now], y=[p["y"]], mode="markers",
            marker=dict(size=14, color=colors.get(p["train"], "#888888"), line=dict(width=2, color="black")),
            name=p["train"], hovertext=p["train"], hoverinfo="text", showlegend=False,
        ))

    x_min, x_max = payload["x_min"], payload["x_max"]
    ticks = list(range(x_min - x_min % 60, x_max + 1, 60))
    fig.update_layout(
        xaxis=dict(title="Time", range=[x_min, x_max], tickmode="array",
                   tickvals=ticks, ticktext=[format_time(t) for t in ticks], gridcolor="lightgray"),
        yaxis=dict(autorange="reversed", tickmode="array",
                   tickvals=list(range(len(stations))), ticktext=stations,
                   gridcolor="lightgray", griddash="dot"),
        height=600,
        margin=dict(l=160, r=40, t=30, b=40),
        plot_bgcolor="white",
        dragmode="pan",
    )
    return fig


def render_status(payload: dict) -> None:
    st.subheader("Train status")
    if not payload["statuses"]:
        st.write("No trains currently active")
        return
    for s in payload["statuses"]:
        st.markdown(
            f"<div style='border-left: 4px solid {s['color']}; padding-left: 8px; margin-bottom: 8px'>"
            f"<b>{html.escape(s['train_number'])} ({s['direction']})</b><br>{html.escape(s['text'])}</div>",
            unsafe_allow_html=True,
        )


def render_tracker() -> None:
    payload = build_tracker_payload(session)
    st.metric("Time", payload["time"], help="Live" if payload["live"] else "Manual time")

    left, right = st.columns([1, 2])
    with left:
        st.plotly_chart(_track_figure(payload), use_container_width=True)
    with right:
        st.plotly_chart(_time_space_figure(payload), use_container_width=True,
                        config={"displayModeBar": True, "responsive": True})
    render_status(payload)

    with st.expander("Timetable"):
        table = pd.DataFrame(payload["grid_rows"])
        if not table.empty:
            table = table[[c["field"] for c in payload["column_defs"]]]
            gb = GridOptionsBuilder.from_dataframe(table)
            gb.configure_default_column(resizable=True, filter=False, sortable=False, editable=False)
            gb.configure_column("station", header_name="station", width=200, pinned="left")
            AgGrid(table, gridOptions=gb.build(), fit_columns_on_grid_load=False,
                   theme="streamlit", height=400, key="timetable_grid")


# Rebuilt on every rerun, so switching mode replaces the refresh schedule
refresh = settings.LIVE_REFRESH_SECONDS if session.clock.live else None
st.fragment(run_every=refresh)(render_tracker)()
