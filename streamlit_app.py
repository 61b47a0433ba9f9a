from __future__ import annotations

from pathlib import Path

import pandas as pd
import streamlit as st

from visit_heatmap.csv_io import load_fixes
from visit_heatmap.heatmap import HeatmapParams, compute_heatmap
from visit_heatmap.inspect import inspect_records
from visit_heatmap.models import DEFAULT_TZ, HeatmapPoint, VisitRecord
from visit_heatmap.sampling import SamplingParams, SamplingPolicy
from visit_heatmap.store import JsonlVisitStore, MemoryVisitStore
from visit_heatmap.timeutils import format_dwell, local_time


@st.cache_data(show_spinner=False)
def _load_store(store_path: str, mtime: float) -> tuple[VisitRecord, ...]:
    _ = mtime  # part of cache key so appended records reload automatically
    return JsonlVisitStore(store_path).query_all()


@st.cache_data(show_spinner=False)
def _replay_csv(csv_path: str, mtime: float, params: SamplingParams) -> tuple[VisitRecord, ...]:
    """Run a raw fix export through the policy into a scratch in-memory store."""

    _ = mtime
    fixes, _ = load_fixes(csv_path)
    store = MemoryVisitStore()
    SamplingPolicy(store, params).process(fixes)
    return store.query_all()


def _points_frame(points: list[HeatmapPoint]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "cell": pt.cell_key,
                "lat": pt.latitude,
                "lon": pt.longitude,
                "count": pt.count,
                "dwell": format_dwell(pt.total_duration_s),
                "intensity": round(pt.intensity, 3),
                "radius_m": round(pt.radius_m, 1),
                "color": pt.color.to_hex(),
            }
            for pt in points
        ]
    )


def main() -> None:
    st.set_page_config(page_title="Visit heatmap", layout="wide")
    st.title("Where I spend my time")

    with st.sidebar:
        st.subheader("Data")
        source = st.radio("Source", ["Record store", "Replay raw CSV"], horizontal=True)
        tz_name = st.text_input("Timezone (IANA)", value=DEFAULT_TZ)
        if source == "Record store":
            data_path = st.text_input("visits.jsonl path", value="visits.jsonl")
        else:
            data_path = st.text_input("Path.csv path", value="Path.csv")
            with st.expander("Sampling thresholds", expanded=False):
                min_distance_m = st.number_input("min_distance_m", value=100.0, step=10.0)
                max_interval_s = st.number_input("max_interval_s", value=300.0, step=30.0)
                max_gap_s = st.number_input("max_gap_s", min_value=0.0, max_value=1800.0, value=1800.0, step=60.0)

        st.subheader("Heatmap")
        precision = st.slider("Cell precision (decimals)", min_value=2, max_value=4, value=3)
        count_weight = st.slider("Visit count weight", min_value=0.0, max_value=1.0, value=0.5, step=0.05)
        show_heatmap = st.toggle("Show heatmap", value=True)

    p = Path(data_path)
    if not p.exists():
        st.error(f"File not found: {data_path!r}")
        return

    try:
        if source == "Record store":
            records = _load_store(data_path, p.stat().st_mtime)
        else:
            params = SamplingParams(
                min_distance_m=float(min_distance_m),
                max_interval_s=float(max_interval_s),
                max_gap_s=float(max_gap_s),
            )
            records = _replay_csv(data_path, p.stat().st_mtime, params)
    except Exception as exc:
        st.exception(exc)
        return

    if not records:
        st.info("No visit records yet: nothing to draw.")
        return

    hm_params = HeatmapParams(precision=int(precision), count_weight=float(count_weight))
    points = compute_heatmap(records, hm_params)
    summary = inspect_records(records, hm_params.precision)

    c1, c2, c3 = st.columns(3)
    c1.metric("Locations", str(summary.records))
    c2.metric("Grid cells", str(summary.cells))
    c3.metric("Total dwell", format_dwell(summary.total_duration_s))
    if summary.min_time_ms is not None and summary.max_time_ms is not None:
        start = local_time(summary.min_time_ms, tz_name)
        end = local_time(summary.max_time_ms, tz_name)
        st.caption(f"{start.isoformat(sep=' ')} to {end.isoformat(sep=' ')}")

    df = _points_frame(points)
    if show_heatmap:
        st.map(df, latitude="lat", longitude="lon", size="radius_m", color="color")

    st.subheader("Cells (hottest first)")
    st.dataframe(df, use_container_width=True, height=520)


if __name__ == "__main__":
    main()
