"""
utils.py — Shared helpers for the chart_plotter package

This file contains small, reusable utilities used by plotter.py:
- converting sampled levels into plottable arrays
- axis labels, grid and legend
- config validation

Keep it “boring + stable”.
"""

from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np
from matplotlib.axes import Axes

Number = Union[int, float]


# ============================================================================
# DATA
# ============================================================================

def levels_to_array(levels: Sequence[Optional[Number]]) -> np.ndarray:
    """
    None (an undefined sample) becomes NaN, which matplotlib draws as a gap.
    Never zero-fill or interpolate here.
    """
    return np.array([np.nan if v is None else float(v) for v in levels], dtype=float)


# ============================================================================
# PLOT APPEARANCE
# ============================================================================

def setup_plot_appearance(ax: Axes, config: Dict[str, Any]) -> None:
    ax.set_xlabel(config.get("x_label", "x"), fontsize=13, fontweight="bold")
    ax.set_ylabel(config.get("y_label", "y"), fontsize=13, fontweight="bold")

    if config.get("title"):
        ax.set_title(config["title"], fontsize=15, fontweight="bold", pad=20)

    if config.get("grid", True):
        ax.grid(True, alpha=0.3)

    handles, labels = ax.get_legend_handles_labels()
    pairs = [(h, l) for h, l in zip(handles, labels) if str(l).strip()]
    if pairs:
        h2, l2 = zip(*pairs)
        ax.legend(h2, l2, loc=config.get("legend_location", "best"), fontsize=11)


# ============================================================================
# VALIDATION
# ============================================================================

def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration and return a list of issues.
    """
    issues: List[str] = []

    if not isinstance(config, dict):
        return ["Configuration must be a dictionary"]

    if str(config.get("type", "line")).strip().lower() != "line":
        issues.append(f"Unsupported chart type: {config.get('type')!r}")

    labels = config.get("labels")
    if not isinstance(labels, list):
        issues.append("'labels' must be a list of x values")
        return issues

    datasets = config.get("datasets")
    if not isinstance(datasets, list) or not datasets:
        issues.append("No datasets found in configuration")
        return issues

    for i, ds in enumerate(datasets):
        if not isinstance(ds, dict):
            issues.append(f"Dataset {i} must be a dictionary")
            continue
        data = ds.get("data")
        if not isinstance(data, list):
            issues.append(f"Dataset '{ds.get('label', i)}' missing data")
        elif len(data) != len(labels):
            issues.append(
                f"Dataset '{ds.get('label', i)}' has {len(data)} points for {len(labels)} labels"
            )

    return issues
