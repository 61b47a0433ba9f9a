"""Command-line interface for visit_heatmap.

Run:
    python -m visit_heatmap record --csv Path.csv --store visits.jsonl
    python -m visit_heatmap heatmap --store visits.jsonl --out heatmap.csv
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from visit_heatmap.csv_io import load_fixes, write_records_csv
from visit_heatmap.heatmap import HeatmapParams, compute_heatmap, write_heatmap_csv
from visit_heatmap.inspect import inspect_records
from visit_heatmap.models import DEFAULT_TZ
from visit_heatmap.sampling import SamplingParams, SamplingPolicy
from visit_heatmap.store import JsonlVisitStore
from visit_heatmap.timeutils import format_dwell, local_time, range_bound_ms

logger = logging.getLogger(__name__)


def _cmd_record(args: argparse.Namespace) -> int:
    fixes, summary = load_fixes(args.csv)
    if args.range_start is not None:
        start_ms = range_bound_ms(args.range_start, args.tz)
        fixes = [fx for fx in fixes if fx.geo_time_ms >= start_ms]
    if args.range_end is not None:
        end_ms = range_bound_ms(args.range_end, args.tz)
        fixes = [fx for fx in fixes if fx.geo_time_ms <= end_ms]

    try:
        params = SamplingParams(
            min_distance_m=args.min_distance_m,
            max_interval_s=args.max_interval_s,
            max_gap_s=args.max_gap_s,
            insert_retries=args.insert_retries,
            max_accuracy_m=args.max_accuracy_m,
        )
    except ValueError as exc:
        print(f"invalid sampling parameters: {exc}", file=sys.stderr)
        return 2
    store = JsonlVisitStore(args.store)
    policy = SamplingPolicy(store, params)
    records = policy.process(fixes)
    logger.info("replayed %s fixes from %s", len(fixes), args.csv)

    print(
        f"rows={summary.rows_total} (skipped={summary.rows_skipped}), fixes={len(fixes)}, "
        f"accepted={policy.accepted_count}, rejected={policy.rejected_count}, dropped={policy.dropped_count}"
    )
    dwell = sum(r.duration_s for r in records)
    print(f"dwell time recorded={format_dwell(dwell)} ({dwell:.1f}s)")
    print(f"appended to: {args.store}")
    return 0


def _cmd_heatmap(args: argparse.Namespace) -> int:
    records = JsonlVisitStore(args.store).query_all()
    params = HeatmapParams(
        precision=args.precision,
        count_weight=args.count_weight,
        base_radius_m=args.base_radius_m,
        radius_span_m=args.radius_span_m,
    )
    points = compute_heatmap(records, params)
    if not points:
        print("no visit records: nothing to draw", file=sys.stderr)

    if args.json:
        payload = [
            asdict(pt) | {"color": pt.color.to_hex()}
            for pt in points
        ]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
        return 0

    write_heatmap_csv(points, args.out)
    print(f"cells={len(points)}, records={len(records)}")
    print(f"written: {args.out}")
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    records = JsonlVisitStore(args.store).query_all()
    res = inspect_records(records, args.precision)

    print("### records")
    print(f"records={res.records}, cells={res.cells}, zero_duration={res.zero_duration_records}")
    print()

    if res.min_time_ms is not None and res.max_time_ms is not None:
        print("### time range (local)")
        start = local_time(res.min_time_ms, args.tz)
        end = local_time(res.max_time_ms, args.tz)
        print(f"start={start.isoformat(sep=' ')}, end={end.isoformat(sep=' ')}")
        print()

    if res.intervals is not None:
        iv = res.intervals
        print("### interval between records (seconds)")
        print(
            f"count={iv.count}, shortest={iv.shortest_s:.3f}, median={iv.median_s:.3f}, "
            f"longest={iv.longest_s:.3f}, idle_gaps={iv.idle_gaps}"
        )
        print()

    print("### dwell")
    print(f"total={format_dwell(res.total_duration_s)} ({res.total_duration_s:.1f}s)")
    if res.busiest_cell is not None:
        print(f"most visited: {res.busiest_cell.cell_key} (count={res.busiest_cell.count})")
    if res.longest_dwell_cell is not None:
        print(
            f"longest dwell: {res.longest_dwell_cell.cell_key} "
            f"({format_dwell(res.longest_dwell_cell.total_duration_s)})"
        )

    if args.json:
        print(json.dumps(asdict(res), ensure_ascii=False, indent=2))
    return 0


def _cmd_export_records(args: argparse.Namespace) -> int:
    records = JsonlVisitStore(args.store).query_all()
    n = write_records_csv(records, args.out, args.tz, args.precision)
    print(f"exported {n} records: {args.out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    defaults = SamplingParams()
    hm_defaults = HeatmapParams()

    p = argparse.ArgumentParser(prog="visit_heatmap")
    p.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO logs, -vv for DEBUG")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_rec = sub.add_parser("record", help="replay a raw fix export through the sampling policy into a store")
    p_rec.add_argument("--csv", type=str, default="Path.csv", help="input CSV (geoTime, latitude, longitude)")
    p_rec.add_argument("--store", type=str, default="visits.jsonl", help="visit record store (JSON lines)")
    p_rec.add_argument("--tz", type=str, default=DEFAULT_TZ, help="timezone (IANA) for --range-*")
    p_rec.add_argument(
        "--min-distance-m",
        type=float,
        default=defaults.min_distance_m,
        help="accept a fix that moved further than this from the last accepted one",
    )
    p_rec.add_argument(
        "--max-interval-s",
        type=float,
        default=defaults.max_interval_s,
        help="accept a fix when this many seconds passed since the last accepted one",
    )
    p_rec.add_argument(
        "--max-gap-s",
        type=float,
        default=defaults.max_gap_s,
        help="gaps longer than this are recorded as zero dwell time (at most 1800)",
    )
    p_rec.add_argument(
        "--insert-retries",
        type=int,
        default=defaults.insert_retries,
        help="extra attempts when the store rejects a write",
    )
    p_rec.add_argument(
        "--max-accuracy-m",
        type=float,
        default=defaults.max_accuracy_m,
        help="ignore fixes whose reported horizontal accuracy is worse than this",
    )
    p_rec.add_argument("--range-start", type=str, default=None, help="only fixes at/after this time")
    p_rec.add_argument("--range-end", type=str, default=None, help="only fixes at/before this time")
    p_rec.set_defaults(func=_cmd_record)

    def add_cell_args(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--store", type=str, default="visits.jsonl", help="visit record store (JSON lines)")
        sp.add_argument(
            "--precision",
            type=int,
            default=hm_defaults.precision,
            help="grid cell size in decimal places (3 is ~111m of latitude)",
        )

    p_hm = sub.add_parser("heatmap", help="compute heatmap points from a store")
    add_cell_args(p_hm)
    p_hm.add_argument("--out", type=str, default="heatmap.csv", help="output CSV path")
    p_hm.add_argument("--json", action="store_true", help="print points as JSON instead of writing CSV")
    p_hm.add_argument(
        "--count-weight",
        type=float,
        default=hm_defaults.count_weight,
        help="weight of visit count in the heat score (dwell time gets the rest)",
    )
    p_hm.add_argument("--base-radius-m", type=float, default=hm_defaults.base_radius_m)
    p_hm.add_argument("--radius-span-m", type=float, default=hm_defaults.radius_span_m)
    p_hm.set_defaults(func=_cmd_heatmap)

    p_ins = sub.add_parser("inspect", help="summarize a store")
    add_cell_args(p_ins)
    p_ins.add_argument("--tz", type=str, default=DEFAULT_TZ, help="timezone (IANA)")
    p_ins.add_argument("--json", action="store_true", help="also print the summary as JSON")
    p_ins.set_defaults(func=_cmd_inspect)

    p_exp = sub.add_parser("export-records", help="export store records to a readable CSV")
    add_cell_args(p_exp)
    p_exp.add_argument("--out", type=str, default="records.csv", help="output CSV path")
    p_exp.add_argument("--tz", type=str, default=DEFAULT_TZ, help="timezone (IANA)")
    p_exp.set_defaults(func=_cmd_export_records)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose > 1 else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
