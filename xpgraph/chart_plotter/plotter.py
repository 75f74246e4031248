"""
plotter.py — Chart Plotter entry point

This file contains ONLY:
- build_chart_config (series -> declarative line-chart config)
- dynamic_chart_plotter (config -> matplotlib Figure)
- render_chart (config -> PNG/SVG bytes)

Helpers (appearance, NaN gaps, validation) live in `utils.py`.
"""

import io
from typing import Any, Dict, Optional, Sequence

import matplotlib

matplotlib.use("Agg")  # headless

from matplotlib.figure import Figure  # noqa: E402

from ..errors import RenderError  # noqa: E402
from .utils import Number, levels_to_array, setup_plot_appearance, validate_config  # noqa: E402

# SVG element ids are salted with a random uuid unless pinned; pin it so the
# same request always renders the same bytes.
matplotlib.rcParams["svg.hashsalt"] = "xpgraph"

MEDIA_TYPES = {
    "png": "image/png",
    "svg": "image/svg+xml",
}


# ============================================================================
# CONFIG
# ============================================================================

def build_chart_config(
    name: str,
    domain: Sequence[int],
    levels: Sequence[Optional[Number]],
    color: str = "blue",
) -> Dict[str, Any]:
    """
    Declarative chart description for one series (XP on x, Level on y).
    """
    return {
        "type": "line",
        "labels": list(domain),
        "datasets": [
            {
                "label": name,
                "data": list(levels),
                "color": color,
                "fill": False,
            }
        ],
        "x_label": "XP",
        "y_label": "Level",
        "grid": True,
    }


# ============================================================================
# FIGURE
# ============================================================================

def dynamic_chart_plotter(
    config: Dict[str, Any],
    width_px: int = 800,
    height_px: int = 600,
    dpi: int = 100,
) -> Figure:
    """
    Build a matplotlib Figure from a line-chart config.
    Uses Figure directly (not pyplot) so concurrent requests don't share state.
    """
    issues = validate_config(config)
    if issues:
        raise ValueError("; ".join(issues))

    fig = Figure(figsize=(width_px / dpi, height_px / dpi), dpi=dpi)
    ax = fig.subplots()

    x_vals = levels_to_array(config["labels"])
    for ds in config["datasets"]:
        y_vals = levels_to_array(ds["data"])
        ax.plot(
            x_vals,
            y_vals,
            label=str(ds.get("label", "")),
            color=ds.get("color", "blue"),
            linewidth=2,
        )
        if ds.get("fill"):
            ax.fill_between(x_vals, y_vals, alpha=0.2, color=ds.get("color", "blue"))

    setup_plot_appearance(ax, config)
    fig.tight_layout()
    return fig


def render_chart(
    config: Dict[str, Any],
    fmt: str = "png",
    width_px: int = 800,
    height_px: int = 600,
    dpi: int = 100,
) -> bytes:
    """
    Render ``config`` to image bytes. Raises RenderError on any backend failure.
    """
    fmt = (fmt or "").lower()
    if fmt not in MEDIA_TYPES:
        raise RenderError(f"Unsupported image format: {fmt!r}")

    try:
        fig = dynamic_chart_plotter(config, width_px=width_px, height_px=height_px, dpi=dpi)
        buf = io.BytesIO()
        if fmt == "svg":
            # SVG carries a creation date by default
            fig.savefig(buf, format=fmt, dpi=dpi, metadata={"Date": None})
        else:
            fig.savefig(buf, format=fmt, dpi=dpi)
        return buf.getvalue()
    except RenderError:
        raise
    except Exception as e:
        raise RenderError(f"{type(e).__name__}: {e}") from e
