"""Strategy charts and accuracy heat maps for the basic-strategy trainer.

Two public data-builder functions return NumPy matrices that can be used
programmatically or passed to the plot helpers:

    build_strategy_matrix(hand_type, level)  — action codes from the oracle
    build_accuracy_matrix(stats, hand_type)  — per-cell accuracy (0–100)

Three public plot functions render matplotlib figures:

    plot_strategy_chart(level, ...)          — 1×3 figure (hard, soft, pairs)
    plot_accuracy_heatmaps(stats, ...)       — 1×3 accuracy figure
    plot_strategy_vs_accuracy(stats, ...)    — 2×3 chart-over-accuracy figure

Matrix convention (both builders):
    Shape  : (len(CHART_TOTALS[hand_type]), 10) — rows = player totals,
             cols = dealer upcards [2..10, A]
    Values : action code (see ACTION_CODES) for strategy matrices;
             accuracy in [0, 100] for accuracy matrices
             np.nan = no data (accuracy only)
"""

from __future__ import annotations

import matplotlib
import matplotlib.colors
import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np

from src.engine.cards import DEALER_RANKS
from src.engine.config import DifficultyLevel
from src.engine.hand import HandType
from src.engine.strategy import CHART_TOTALS, Action, strategy_grid
from src.training.analytics import accuracy_matrix
from src.training.statistics import Statistics

# ─── Constants ────────────────────────────────────────────────────────────────

ACTION_CODES: dict[Action, int] = {
    Action.HIT: 0,
    Action.STAND: 1,
    Action.DOUBLE: 2,
    Action.SPLIT: 3,
    Action.SURRENDER: 4,
}
_ACTION_LETTERS: dict[int, str] = {0: "H", 1: "S", 2: "D", 3: "P", 4: "R"}
_ACTION_COLORS: list[str] = ["#d62728", "#2ca02c", "#1f77b4", "#9467bd", "#7f7f7f"]
_COL_LABELS: list[str] = list(DEALER_RANKS)
_NAN_COLOR: str = "#cccccc"
_HAND_TYPES: list[HandType] = [HandType.HARD, HandType.SOFT, HandType.PAIR]
_PANEL_TITLES: dict[HandType, str] = {
    HandType.HARD: "Hard totals",
    HandType.SOFT: "Soft totals",
    HandType.PAIR: "Pairs",
}


def row_labels(kind: HandType) -> list[str]:
    """Row labels for a chart: totals, soft 'A,x' or pair 'x,x'."""
    labels = []
    for total in CHART_TOTALS[kind]:
        if kind is HandType.SOFT:
            labels.append(f"A,{total - 11}")
        elif kind is HandType.PAIR:
            card = "A" if total == 22 else str(total // 2)
            labels.append(f"{card},{card}")
        else:
            labels.append(str(total))
    return labels


# ─── Colormaps ────────────────────────────────────────────────────────────────


def _make_action_cmap() -> matplotlib.colors.ListedColormap:
    """One colour per action code, grey for absent cells."""
    cmap = matplotlib.colors.ListedColormap(_ACTION_COLORS)
    cmap.set_bad(color=_NAN_COLOR)
    return cmap


def _make_accuracy_cmap() -> matplotlib.colors.Colormap:
    """RdYlGn gradient: red=0%, green=100%, grey=unplayed (NaN)."""
    cmap = matplotlib.colormaps["RdYlGn"].copy()
    cmap.set_bad(color=_NAN_COLOR)
    return cmap


_ACTION_CMAP: matplotlib.colors.Colormap = _make_action_cmap()
_ACCURACY_CMAP: matplotlib.colors.Colormap = _make_accuracy_cmap()


# ─── Data builders ────────────────────────────────────────────────────────────


def build_strategy_matrix(
    kind: HandType,
    level: int = DifficultyLevel.SURRENDER,
) -> np.ndarray:
    """Return the oracle's action codes for one hand type.

    Args:
        kind:  Hand type to chart.
        level: Difficulty level whose tables apply.

    Returns:
        float64 array, shape (len(CHART_TOTALS[kind]), 10).
    """
    grid = strategy_grid(kind, level)
    totals = CHART_TOTALS[kind]
    matrix = np.zeros((len(totals), len(DEALER_RANKS)))
    for r, total in enumerate(totals):
        for c, dealer_rank in enumerate(DEALER_RANKS):
            matrix[r, c] = ACTION_CODES[grid[(total, dealer_rank)]]
    return matrix


def build_accuracy_matrix(stats: Statistics | None, kind: HandType) -> np.ndarray:
    """Return per-cell accuracy for one hand type; NaN where unplayed."""
    return accuracy_matrix(stats, kind)


# ─── Rendering helper ─────────────────────────────────────────────────────────


def _render_panel(
    ax: matplotlib.axes.Axes,
    data: np.ndarray,
    kind: HandType,
    actions: bool,
) -> matplotlib.image.AxesImage:
    """Render one heat-map panel onto *ax* and return the AxesImage.

    Sets axis ticks, tick labels, and cell annotations.  The caller is
    responsible for setting title, xlabel, and ylabel.
    """
    masked = np.ma.masked_invalid(data)
    if actions:
        im = ax.imshow(masked, cmap=_ACTION_CMAP, vmin=-0.5, vmax=len(_ACTION_COLORS) - 0.5, aspect="auto")
    else:
        im = ax.imshow(masked, cmap=_ACCURACY_CMAP, vmin=0.0, vmax=100.0, aspect="auto")

    ax.set_xticks(range(len(_COL_LABELS)))
    ax.set_xticklabels(_COL_LABELS, fontsize=8)
    ax.set_yticks(range(data.shape[0]))
    ax.set_yticklabels(row_labels(kind), fontsize=8)

    for r in range(data.shape[0]):
        for c in range(data.shape[1]):
            val = data[r, c]
            if np.isnan(val):
                continue
            if actions:
                text = _ACTION_LETTERS[int(val)]
                text_color = "white"
            else:
                text = f"{val:.0f}"
                text_color = "black" if 25 < val < 75 else "white"
            ax.text(
                c,
                r,
                text,
                ha="center",
                va="center",
                fontsize=7,
                color=text_color,
                fontweight="bold",
            )

    return im


def _finish(fig: matplotlib.figure.Figure, show: bool, save_path: str | None) -> None:
    plt.tight_layout()
    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=120)
    if show:
        plt.show()


# ─── Public plot functions ────────────────────────────────────────────────────


def plot_strategy_chart(
    level: int = DifficultyLevel.SURRENDER,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot the basic-strategy chart as a 1×3 figure (hard, soft, pairs).

    Cells read H=hit, S=stand, D=double, P=split, R=surrender.

    Args:
        level:     Difficulty level whose tables apply.
        show:      If True, call plt.show() after rendering.
        save_path: If not None, save the figure to this path before showing.

    Returns:
        matplotlib.figure.Figure.
    """
    fig, axes = plt.subplots(1, 3, figsize=(15, 7))
    fig.suptitle(f"Basic Strategy (H17, DAS, level {int(level)})", fontsize=13, fontweight="bold")

    for ax, kind in zip(axes, _HAND_TYPES):
        _render_panel(ax, build_strategy_matrix(kind, level), kind, actions=True)
        ax.set_title(_PANEL_TITLES[kind], fontsize=10)
        ax.set_xlabel("Dealer upcard", fontsize=9)
    axes[0].set_ylabel("Player hand", fontsize=9)

    _finish(fig, show, save_path)
    return fig


def plot_accuracy_heatmaps(
    stats: Statistics | None,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Plot per-scenario accuracy as a 1×3 figure (hard, soft, pairs).

    Args:
        stats:     Ledger snapshot; unplayed cells render grey.
        show:      If True, call plt.show().
        save_path: If not None, save to path.

    Returns:
        matplotlib.figure.Figure.
    """
    fig, axes = plt.subplots(1, 3, figsize=(15, 7))
    fig.suptitle("Accuracy by Scenario (%)", fontsize=13, fontweight="bold")

    for ax, kind in zip(axes, _HAND_TYPES):
        im = _render_panel(ax, build_accuracy_matrix(stats, kind), kind, actions=False)
        ax.set_title(_PANEL_TITLES[kind], fontsize=10)
        ax.set_xlabel("Dealer upcard", fontsize=9)
    axes[0].set_ylabel("Player hand", fontsize=9)
    plt.colorbar(im, ax=axes[-1], label="Accuracy %", fraction=0.046, pad=0.04)

    _finish(fig, show, save_path)
    return fig


def plot_strategy_vs_accuracy(
    stats: Statistics | None,
    level: int = DifficultyLevel.SURRENDER,
    *,
    show: bool = True,
    save_path: str | None = None,
) -> matplotlib.figure.Figure:
    """Side-by-side: the chart to learn above the player's accuracy on it.

    Produces a 2×3 figure:
        Row 0 = correct actions.
        Row 1 = accuracy (continuous RdYlGn + colorbar).
        Cols  = hard, soft, pairs.

    Returns:
        matplotlib.figure.Figure with 6 subplot axes.
    """
    fig, axes = plt.subplots(2, 3, figsize=(15, 12))
    fig.suptitle("Strategy vs. Your Accuracy", fontsize=14, fontweight="bold")

    for col, kind in enumerate(_HAND_TYPES):
        _render_panel(axes[0, col], build_strategy_matrix(kind, level), kind, actions=True)
        im = _render_panel(axes[1, col], build_accuracy_matrix(stats, kind), kind, actions=False)
        axes[0, col].set_title(_PANEL_TITLES[kind], fontsize=10, fontweight="bold")
        axes[1, col].set_xlabel("Dealer upcard", fontsize=9)
        if col == 2:
            plt.colorbar(im, ax=axes[1, col], label="Accuracy %", fraction=0.046, pad=0.04)

    axes[0, 0].set_ylabel("Correct action", fontsize=9)
    axes[1, 0].set_ylabel("Accuracy", fontsize=9)

    _finish(fig, show, save_path)
    return fig


# ─── Entry point ──────────────────────────────────────────────────────────────

if __name__ == "__main__":
    import sys

    from src.analysis.simulator import simulate_practice

    n_hands = int(sys.argv[1]) if len(sys.argv) > 1 else 500
    print(f"Simulating {n_hands} practice hands …")
    result = simulate_practice(n_hands=n_hands, seed=42)

    print("Generating heat maps …")
    plot_strategy_chart(show=False, save_path="strategy_chart.png")
    plot_accuracy_heatmaps(result.stats, show=False, save_path="accuracy.png")
    plot_strategy_vs_accuracy(result.stats, show=False, save_path="strategy_vs_accuracy.png")
    print("Saved: strategy_chart.png, accuracy.png, strategy_vs_accuracy.png")
