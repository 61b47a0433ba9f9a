"""Module entry point: python -m visit_heatmap ..."""

from __future__ import annotations

from visit_heatmap.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
