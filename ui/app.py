"""Method graph Streamlit UI — separate from methodgraph, uses backend APIs."""

from __future__ import annotations

import sys
from pathlib import Path

# Allow importing ui.lib when running as: streamlit run ui/app.py
if str(Path(__file__).resolve().parent) not in sys.path:
    sys.path.insert(0, str(Path(__file__).resolve().parent))

import streamlit as st

from lib.api import (
    export_graph,
    get_base_url,
    get_graph,
    get_neighbors,
    get_zoom,
    health,
    list_methods,
    ready,
    stream_layout,
    view_params,
)
from lib.sse import layout_events

INITIAL_SCALE = 0.85
SCALE_EXTENT = (0.2, 4.0)

RELATIONSHIP_LEGEND = {
    "explicit": ("Explicitly Related", "#88c0d0"),
    "same_step": ("Same Pipeline Step", "rgba(136, 192, 208, 0.3)"),
    "shared_modality": ("Shared Modality", "rgba(163, 190, 140, 0.4)"),
    "shared_task": ("Shared Task", "rgba(180, 142, 173, 0.4)"),
    "similar": ("Similar Methods", "rgba(235, 203, 139, 0.5)"),
}


def _zoom(factor: float | None) -> None:
    if factor is None:
        st.session_state.scale = INITIAL_SCALE
    else:
        lo, hi = SCALE_EXTENT
        st.session_state.scale = max(lo, min(hi, st.session_state.scale * factor))


# Page config
st.set_page_config(
    page_title="Method Graph",
    page_icon="🕸️",
    layout="wide",
    initial_sidebar_state="expanded",
)
st.session_state.setdefault("scale", INITIAL_SCALE)

# Sidebar navigation
st.sidebar.title("Method Graph")
st.sidebar.caption("Process-mining method relationships")
nav = st.sidebar.radio(
    "Section",
    ["Graph", "Live layout", "Health"],
    label_visibility="collapsed",
)

api_url = st.sidebar.text_input(
    "API base URL",
    value=get_base_url(),
    help="Backend API root, e.g. http://localhost:8000",
)
if api_url:
    import os
    os.environ["METHODGRAPH_API_URL"] = api_url.rstrip("/")

st.sidebar.subheader("Relationships")
show_explicit = st.sidebar.checkbox("Explicitly related", value=True)
show_same_step = st.sidebar.checkbox("Same pipeline step", value=False)
show_shared_modality = st.sidebar.checkbox("Shared modality", value=False)
show_shared_task = st.sidebar.checkbox("Shared task", value=False)
show_similar = st.sidebar.checkbox("Similar methods", value=True)
similarity_threshold = st.sidebar.slider("Similarity threshold", 0.0, 1.0, 0.3, 0.05)
max_similar_links = st.sidebar.slider("Max similar links per method", 0, 10, 4)
node_spacing = st.sidebar.slider("Node spacing", 0.5, 3.0, 1.5, 0.1)

params = view_params(
    show_explicit=show_explicit,
    show_same_step=show_same_step,
    show_shared_modality=show_shared_modality,
    show_shared_task=show_shared_task,
    show_similar=show_similar,
    similarity_threshold=similarity_threshold,
    max_similar_links=max_similar_links,
    node_spacing=node_spacing,
)

# ----- Graph tab -----
if nav == "Graph":
    st.header("Relationship graph")

    try:
        methods = list_methods()
    except Exception as e:
        st.error(f"Failed to load catalog: {e}")
        st.stop()

    names = {m["id"]: m["name"] for m in methods}
    selected_id = st.selectbox(
        "Selected method",
        options=[""] + list(names),
        format_func=lambda i: names.get(i, "None"),
    ) or None

    c1, c2, c3, c4 = st.columns([1, 1, 1, 4])
    c1.button("＋ Zoom in", on_click=_zoom, args=(1.3,))
    c2.button("－ Zoom out", on_click=_zoom, args=(0.7,))
    c3.button("Fit", on_click=_zoom, args=(None,))

    scale = st.session_state.scale
    try:
        band = get_zoom(scale)
        c4.caption(f"**{band['label']}** · {band['percent']}")
    except Exception as e:
        c4.warning(f"Zoom info unavailable: {e}")

    graph_col, card_col = st.columns([3, 1])
    with graph_col:
        try:
            with st.spinner("Laying out graph…"):
                svg = export_graph(params, format="svg", zoom=scale, selected_id=selected_id)
            st.markdown(svg.decode("utf-8"), unsafe_allow_html=True)
        except Exception as e:
            st.error(f"Failed to render graph: {e}")

    with card_col:
        st.subheader("Legend")
        for label, color in RELATIONSHIP_LEGEND.values():
            st.markdown(
                f'<span style="display:inline-block;width:24px;height:3px;background:{color};'
                f'vertical-align:middle;margin-right:8px"></span>{label}',
                unsafe_allow_html=True,
            )

        if selected_id:
            try:
                info = get_neighbors(selected_id, params)
            except Exception as e:
                st.error(f"Failed to load method: {e}")
            else:
                st.subheader(info["name"])
                st.caption(f"{info['step_name']} · {info['degree']} connections")
                for n in info["neighbors"]:
                    st.markdown(f"- **{n['name']}** · {n['label']} ({n['strength']:.2f})")

    with st.expander("Downloads"):
        for fmt, mime in (("json", "application/json"), ("graphml", "application/xml"), ("png", "image/png")):
            try:
                data = export_graph(params, format=fmt, zoom=scale, selected_id=selected_id)
            except Exception as e:
                st.error(f"{fmt.upper()} export failed: {e}")
                continue
            st.download_button(f"Download {fmt.upper()}", data, file_name=f"method_graph.{fmt}", mime=mime)

# ----- Live layout tab -----
elif nav == "Live layout":
    st.header("Live layout")
    st.caption("Streams one frame per simulation step until the layout cools.")

    if st.button("Run layout"):
        progress = st.progress(0.0, text="Starting…")
        chart_placeholder = st.empty()
        try:
            resp = stream_layout(params)
            resp.raise_for_status()
            for event_type, data in layout_events(resp):
                if event_type == "frame":
                    alpha = data.get("alpha", 1.0)
                    progress.progress(min(1.0, 1.0 - alpha), text=f"Tick {data.get('tick', 0)} · alpha {alpha:.3f}")
                    points = [{"x": x, "y": -y} for x, y in data.get("positions", {}).values()]
                    chart_placeholder.scatter_chart(points, x="x", y="y")
                elif event_type == "done":
                    progress.progress(1.0, text=f"Settled after {data.get('ticks', 0)} ticks")
        except Exception as e:
            st.error(f"Stream error: {e}")

# ----- Health tab -----
elif nav == "Health":
    st.header("Health")
    col1, col2 = st.columns(2)
    with col1:
        st.subheader("Health")
        try:
            st.json(health())
        except Exception as e:
            st.error(str(e))
    with col2:
        st.subheader("Ready")
        try:
            st.json(ready())
        except Exception as e:
            st.error(str(e))
