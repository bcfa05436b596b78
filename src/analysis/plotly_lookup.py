"""Interactive Plotly strategy and accuracy lookup for the trainer.

Four public functions:

    build_strategy_lookup_figure(level)
        — Interactive hard/soft/pair charts of the correct action.
    build_accuracy_lookup_figure(stats)
        — Interactive hard/soft/pair accuracy heatmaps.
    build_comparison_figure(stats, level)
        — 2×3 grid: correct action above the player's accuracy.
    save_lookup_html(fig, path)
        — Export any figure to a self-contained HTML file.

Hover over any cell to see the scenario (hand, dealer upcard), the correct
action with its explanation, and, for accuracy panels, the attempt count.
"""

from __future__ import annotations

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from src.analysis.heat_maps import (
    ACTION_CODES,
    build_accuracy_matrix,
    build_strategy_matrix,
    row_labels,
)
from src.engine.cards import DEALER_RANKS
from src.engine.config import DifficultyLevel
from src.engine.hand import HandType
from src.engine.strategy import CHART_TOTALS, explain, strategy_grid
from src.training.analytics import attempts_matrix
from src.training.statistics import Statistics

# ─── Constants ────────────────────────────────────────────────────────────────

_COL_LABELS: list[str] = list(DEALER_RANKS)
_HAND_TYPES: list[HandType] = [HandType.HARD, HandType.SOFT, HandType.PAIR]
_PANEL_TITLES: list[str] = ["Hard totals", "Soft totals", "Pairs"]

# Stepped colorscale over action codes 0–4 (hit, stand, double, split, surrender).
_ACTION_COLORSCALE: list[list] = [
    [0.0, "#d62728"], [0.2, "#d62728"],
    [0.2, "#2ca02c"], [0.4, "#2ca02c"],
    [0.4, "#1f77b4"], [0.6, "#1f77b4"],
    [0.6, "#9467bd"], [0.8, "#9467bd"],
    [0.8, "#7f7f7f"], [1.0, "#7f7f7f"],
]

_ACCURACY_COLORSCALE: str = "RdYlGn"


# ─── Hover text builders ──────────────────────────────────────────────────────


def _build_strategy_hover(kind: HandType, level: int) -> list[list[str]]:
    """Hover strings for a strategy panel: hand, upcard, action, reason."""
    grid = strategy_grid(kind, level)
    labels = row_labels(kind)
    rows: list[list[str]] = []
    for r, total in enumerate(CHART_TOTALS[kind]):
        row: list[str] = []
        for dealer_rank in DEALER_RANKS:
            action = grid[(total, dealer_rank)]
            lines = [
                f"Hand: <b>{labels[r]}</b> ({kind.value} {total})",
                f"Dealer: {dealer_rank}",
                f"Action: <b>{action.value.upper()}</b>",
                explain(total, dealer_rank, kind, action),
            ]
            row.append("<br>".join(lines))
        rows.append(row)
    return rows


def _build_accuracy_hover(
    data: np.ndarray,
    attempts: np.ndarray,
    kind: HandType,
    level: int,
) -> list[list[str]]:
    """Hover strings for an accuracy panel (empty string for unplayed cells)."""
    grid = strategy_grid(kind, level)
    labels = row_labels(kind)
    rows: list[list[str]] = []
    for r, total in enumerate(CHART_TOTALS[kind]):
        row: list[str] = []
        for c, dealer_rank in enumerate(DEALER_RANKS):
            val = data[r, c]
            if np.isnan(val):
                row.append("")
                continue
            lines = [
                f"Hand: <b>{labels[r]}</b> vs {dealer_rank}",
                f"Accuracy: <b>{val:.0f}%</b>",
                f"Attempts: {attempts[r, c]}",
                f"Correct play: {grid[(total, dealer_rank)].value.upper()}",
            ]
            row.append("<br>".join(lines))
        rows.append(row)
    return rows


# ─── Trace builder ─────────────────────────────────────────────────────────────


def _make_heatmap_trace(
    data: np.ndarray,
    hover_text: list[list[str]],
    kind: HandType,
    *,
    colorscale: list[list] | str,
    zmax: float,
    name: str,
    showscale: bool = True,
    colorbar_title: str = "",
    colorbar_x: float = 1.02,
) -> go.Heatmap:
    """Build one go.Heatmap trace.

    NaN values in *data* are converted to None so Plotly renders them as
    blank (transparent) cells.
    """
    z = [[None if np.isnan(v) else v for v in row] for row in data.tolist()]
    return go.Heatmap(
        z=z,
        x=_COL_LABELS,
        y=row_labels(kind),
        colorscale=colorscale,
        zmin=0.0,
        zmax=zmax,
        text=hover_text,
        hovertemplate="%{text}<extra></extra>",
        showscale=showscale,
        colorbar={"title": colorbar_title, "x": colorbar_x},
        name=name,
    )


def _strategy_trace(kind: HandType, level: int, showscale: bool) -> go.Heatmap:
    return _make_heatmap_trace(
        build_strategy_matrix(kind, level),
        _build_strategy_hover(kind, level),
        kind,
        colorscale=_ACTION_COLORSCALE,
        zmax=float(len(ACTION_CODES) - 1),
        name=kind.value,
        showscale=showscale,
        colorbar_title="H / S / D / P / R",
    )


def _accuracy_trace(stats: Statistics | None, kind: HandType, level: int, showscale: bool) -> go.Heatmap:
    data = build_accuracy_matrix(stats, kind)
    return _make_heatmap_trace(
        data,
        _build_accuracy_hover(data, attempts_matrix(stats, kind), kind, level),
        kind,
        colorscale=_ACCURACY_COLORSCALE,
        zmax=100.0,
        name=kind.value,
        showscale=showscale,
        colorbar_title="Accuracy %",
    )


# ─── Public figure builders ───────────────────────────────────────────────────


def build_strategy_lookup_figure(level: int = DifficultyLevel.SURRENDER) -> go.Figure:
    """Build an interactive strategy chart (hard, soft, pair panels).

    Args:
        level: Difficulty level whose tables apply.

    Returns:
        go.Figure with three heatmap traces in a 1×3 subplot layout.
    """
    fig = make_subplots(rows=1, cols=3, subplot_titles=_PANEL_TITLES, horizontal_spacing=0.07)
    for col, kind in enumerate(_HAND_TYPES, start=1):
        fig.add_trace(_strategy_trace(kind, level, showscale=col == 3), row=1, col=col)

    fig.update_layout(
        title_text=f"Basic Strategy Lookup (level {int(level)})",
        title_font_size=15,
        height=560,
        width=1100,
    )
    fig.update_yaxes(title_text="Player hand", col=1)
    fig.update_xaxes(title_text="Dealer upcard")
    return fig


def build_accuracy_lookup_figure(
    stats: Statistics | None,
    level: int = DifficultyLevel.SURRENDER,
) -> go.Figure:
    """Build interactive accuracy heatmaps (hard, soft, pair panels).

    Unplayed cells are blank. Hover shows accuracy, attempts and the
    correct play.

    Returns:
        go.Figure with three heatmap traces in a 1×3 subplot layout.
    """
    fig = make_subplots(rows=1, cols=3, subplot_titles=_PANEL_TITLES, horizontal_spacing=0.07)
    for col, kind in enumerate(_HAND_TYPES, start=1):
        fig.add_trace(_accuracy_trace(stats, kind, level, showscale=col == 3), row=1, col=col)

    fig.update_layout(
        title_text="Accuracy by Scenario",
        title_font_size=15,
        height=560,
        width=1100,
    )
    fig.update_yaxes(title_text="Player hand", col=1)
    fig.update_xaxes(title_text="Dealer upcard")
    return fig


def build_comparison_figure(
    stats: Statistics | None,
    level: int = DifficultyLevel.SURRENDER,
) -> go.Figure:
    """Build a 2×3 figure: correct action (row 1) over accuracy (row 2).

    Returns:
        go.Figure with 6 heatmap traces in a 2×3 subplot layout.
    """
    subplot_titles = [f"{t} — Strategy" for t in _PANEL_TITLES] + [f"{t} — Accuracy" for t in _PANEL_TITLES]
    fig = make_subplots(
        rows=2,
        cols=3,
        subplot_titles=subplot_titles,
        horizontal_spacing=0.07,
        vertical_spacing=0.12,
    )
    for col, kind in enumerate(_HAND_TYPES, start=1):
        fig.add_trace(_strategy_trace(kind, level, showscale=False), row=1, col=col)
        fig.add_trace(_accuracy_trace(stats, kind, level, showscale=col == 3), row=2, col=col)

    fig.update_layout(
        title_text="Strategy vs. Accuracy",
        title_font_size=15,
        height=1000,
        width=1100,
    )
    for r in range(1, 3):
        fig.update_yaxes(title_text="Player hand", row=r, col=1)
    for c in range(1, 4):
        fig.update_xaxes(title_text="Dealer upcard", row=2, col=c)
    return fig


# ─── HTML export ───────────────────────────────────────────────────────────────


def save_lookup_html(fig: go.Figure, path: str) -> None:
    """Save a Plotly figure to a self-contained HTML file.

    Plotly JS is loaded from the CDN so the file itself remains compact.
    """
    fig.write_html(path, include_plotlyjs="cdn")


# ─── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys

    from src.analysis.simulator import simulate_practice

    n_hands = int(sys.argv[1]) if len(sys.argv) > 1 else 500
    print(f"Simulating {n_hands} practice hands …")
    result = simulate_practice(n_hands=n_hands, seed=42)

    print("Building interactive lookup figures …")
    save_lookup_html(build_strategy_lookup_figure(), "strategy_lookup.html")
    save_lookup_html(build_accuracy_lookup_figure(result.stats), "accuracy_lookup.html")
    save_lookup_html(build_comparison_figure(result.stats), "comparison_lookup.html")
    print("Saved: strategy_lookup.html, accuracy_lookup.html, comparison_lookup.html")
