"""Blackjack Basic-Strategy Trainer — Streamlit Dashboard.

Four-tab interactive trainer:
  Tab 1 — Practice          (deal a scenario, pick an action, get graded)
  Tab 2 — Strategy Chart    (matplotlib chart + Plotly hover lookup)
  Tab 3 — Heat Maps         (accuracy by scenario, session trend)
  Tab 4 — Progress Report   (printed report, weakest spots, save/load)

The statistics ledger, the table config, the open session and the current
scenario live in st.session_state and are replaced, never mutated, after
every decision.

Run:
    PYTHONPATH=. streamlit run app.py
"""

from __future__ import annotations

import contextlib
import io
import json
import time

import matplotlib

matplotlib.use("Agg")  # must be set before any other matplotlib imports

import pandas as pd
import streamlit as st

from src.engine.config import (
    LEVEL_CONFIGS,
    DifficultyLevel,
    GameConfig,
    TrainingMode,
    config_description,
    update_config,
)
from src.utils import setup_logger

logger = setup_logger("src")

# ─── Page config ──────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Basic Strategy Trainer",
    page_icon="🃏",
    layout="wide",
)

# ─── Lazy imports (inside functions to keep startup fast) ─────────────────────


@st.cache_resource
def _load_modules():
    """Import heavy modules once (cached for the process lifetime)."""
    from src.analysis.heat_maps import plot_accuracy_heatmaps, plot_strategy_chart
    from src.analysis.plotly_lookup import build_accuracy_lookup_figure, build_strategy_lookup_figure
    from src.analysis.strategy_report import print_full_report
    from src.engine import scenarios, strategy
    from src.engine.cards import card_to_display
    from src.engine.hand import evaluate, hand_value_display
    from src.training import analytics, difficulty, scheduler, sessions, speed, statistics

    return {
        "plot_strategy_chart": plot_strategy_chart,
        "plot_accuracy_heatmaps": plot_accuracy_heatmaps,
        "build_strategy_lookup_figure": build_strategy_lookup_figure,
        "build_accuracy_lookup_figure": build_accuracy_lookup_figure,
        "print_full_report": print_full_report,
        "scenarios": scenarios,
        "strategy": strategy,
        "card_to_display": card_to_display,
        "evaluate": evaluate,
        "hand_value_display": hand_value_display,
        "analytics": analytics,
        "difficulty": difficulty,
        "scheduler": scheduler,
        "sessions": sessions,
        "speed": speed,
        "statistics": statistics,
    }


m = _load_modules()

# ─── Sidebar controls ─────────────────────────────────────────────────────────

with st.sidebar:
    st.title("🃏 Basic Strategy Trainer")
    st.markdown("---")

    level = st.selectbox(
        "Difficulty level",
        options=list(DifficultyLevel),
        format_func=lambda lv: LEVEL_CONFIGS[lv].name,
        index=len(DifficultyLevel) - 1,
    )
    mode = st.selectbox(
        "Training mode",
        options=list(TrainingMode),
        format_func=lambda md: md.value.title(),
        index=list(TrainingMode).index(TrainingMode.BALANCED),
    )

    preset = None
    challenge = None
    if mode is TrainingMode.CUSTOM:
        preset = st.selectbox("Practice subset", options=list(m["scenarios"].PRESET_FILTERS))
    if mode is TrainingMode.SPEED:
        challenge = m["speed"].SPEED_CHALLENGES[
            st.selectbox("Speed challenge", options=list(m["speed"].SPEED_CHALLENGES))
        ]

    if "config" not in st.session_state:
        st.session_state["config"] = GameConfig()
    adaptive = st.checkbox(
        "Adaptive difficulty",
        value=st.session_state["config"].adaptive_difficulty,
        help="Suggest a level change once your accuracy supports it.",
    )
    if adaptive != st.session_state["config"].adaptive_difficulty:
        st.session_state["config"] = update_config(st.session_state["config"], adaptive_difficulty=adaptive)
    config = st.session_state["config"]

    st.markdown("---")
    new_session = st.button("Start new session", type="primary")
    with st.expander("Table rules"):
        for line in config_description(config):
            st.markdown(f"- {line}")

# ─── Session state ────────────────────────────────────────────────────────────


def _deal() -> None:
    """Put the next scenario for the selected mode into session state."""
    stats = st.session_state["stats"]
    if mode is TrainingMode.CUSTOM:
        scenario = m["scenarios"].generate_filtered(m["scenarios"].PRESET_FILTERS[preset], level, stats)
    elif mode is TrainingMode.SPEED:
        scenario = m["scenarios"].generate_for_level(level)
    else:
        scenario = m["scheduler"].next_scenario(stats, level, mode)
    st.session_state["scenario"] = scenario
    st.session_state["shown_at"] = time.time()


def _start_session() -> None:
    st.session_state["session"] = m["sessions"].create_session(mode, level)
    _deal()


if "stats" not in st.session_state:
    st.session_state["stats"] = m["statistics"].create_initial_stats()
    st.session_state["history"] = []
    st.session_state["feedback"] = None
    _start_session()

session_changed = (
    st.session_state["session"].mode is not mode or st.session_state["session"].level != level
)
if new_session or session_changed:
    st.session_state["history"].append(m["sessions"].end_session(st.session_state["session"]))
    st.session_state["feedback"] = None
    _start_session()


def _answer(chosen) -> None:
    """Grade *chosen* against the current scenario and deal the next one."""
    scenario = st.session_state["scenario"]
    session = st.session_state["session"]
    elapsed_ms = (time.time() - st.session_state["shown_at"]) * 1000

    if challenge is not None and elapsed_ms > challenge.time_limit_ms:
        outcome = m["speed"].timeout_outcome(scenario, level, challenge.time_limit_ms, session.id)
    else:
        outcome = m["statistics"].grade_decision(scenario, chosen, level, elapsed_ms, session.id)

    stats = m["statistics"].fold(st.session_state["stats"], outcome)
    mistake = stats.mistakes[-1] if not outcome.is_correct and stats.mistakes else None
    st.session_state["stats"] = stats
    st.session_state["session"] = m["sessions"].update_session(
        session, outcome.is_correct, outcome.decision_time, mistake
    )
    key = scenario.tracking_key
    st.session_state["feedback"] = (
        outcome.is_correct,
        outcome.correct_action,
        m["strategy"].explain(key.player_total, key.dealer_rank, key.hand_type, outcome.correct_action),
    )
    logger.debug("graded %s: %s (%s)", key, outcome.action.value, outcome.is_correct)
    _deal()


# ─── Tabs ─────────────────────────────────────────────────────────────────────

tab1, tab2, tab3, tab4 = st.tabs(["Practice", "Strategy Chart", "Heat Maps", "Progress Report"])

stats = st.session_state["stats"]
session = st.session_state["session"]

# ── Tab 1: Practice ───────────────────────────────────────────────────────────

with tab1:
    st.header("Practice")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Session hands", session.hands_played)
    col2.metric("Session accuracy", f"{m['sessions'].session_accuracy(session)}%")
    col3.metric("Streak", session.current_streak)
    col4.metric("Overall accuracy", f"{m['statistics'].accuracy(stats)}%")

    feedback = st.session_state["feedback"]
    if feedback is not None:
        ok, correct_action, reason = feedback
        if ok:
            st.success(f"Correct: {correct_action.value.upper()}. {reason}")
        else:
            st.error(f"Incorrect: the play is {correct_action.value.upper()}. {reason}")

    scenario = st.session_state["scenario"]
    if scenario is None and not stats.by_scenario:
        st.info(
            "No practice history yet. Mastery mode only revisits scenarios you have "
            "already played, so build some history in another mode first."
        )
    elif scenario is None:
        st.success(
            "No tracked scenario is below the mastery threshold. "
            "Switch mode or level to keep practicing."
        )
    else:
        value = m["evaluate"](scenario.player_cards)
        st.subheader(f"Dealer shows {m['card_to_display'](scenario.dealer_upcard)}")
        st.markdown(
            "### "
            + "  ".join(m["card_to_display"](c) for c in scenario.player_cards)
            + f"  ({m['hand_value_display'](value)})"
        )
        if challenge is not None:
            st.caption(
                f"{challenge.name.title()} challenge: {challenge.time_limit_ms / 1000:.1f}s per hand, "
                f"{m['speed'].hands_remaining(session, challenge)} hands to go"
            )

        legal = m["strategy"].available_actions(
            scenario.player_cards,
            scenario.can_double,
            scenario.can_split,
            scenario.can_surrender,
            level,
        )
        for col, action in zip(st.columns(len(legal)), legal):
            col.button(action.value.title(), key=f"act_{action.value}", on_click=_answer, args=(action,))

    if challenge is not None and m["speed"].challenge_passed(session, challenge):
        st.balloons()
        st.success(f"{challenge.name.title()} speed challenge passed!")

    hint = m["difficulty"].suggested_level(stats, level) if config.adaptive_difficulty else None
    if hint is not None:
        st.info(f"Suggested next level: {LEVEL_CONFIGS[hint].name}")

# ── Tab 2: Strategy Chart ─────────────────────────────────────────────────────

with tab2:
    st.header("Strategy Chart")
    st.caption("H = hit, S = stand, D = double, P = split, R = surrender")
    st.pyplot(m["plot_strategy_chart"](level, show=False))

    st.markdown("---")
    st.subheader("Interactive Lookup")
    st.caption("Hover over any cell to see the action and why.")
    st.plotly_chart(m["build_strategy_lookup_figure"](level), use_container_width=True)

# ── Tab 3: Heat Maps ──────────────────────────────────────────────────────────

with tab3:
    st.header("Accuracy Heat Maps")
    if stats.total_decisions == 0:
        st.info("Play a few hands in the Practice tab to fill the heat maps.")
    else:
        st.plotly_chart(m["build_accuracy_lookup_figure"](stats, level), use_container_width=True)
        st.pyplot(m["plot_accuracy_heatmaps"](stats, show=False))

    history = st.session_state["history"] + [session]
    trend = m["analytics"].trend_frame(history)
    if len(trend) > 1:
        st.markdown("---")
        st.subheader("Session Trend")
        st.line_chart(trend.set_index("start_time")["accuracy"])

# ── Tab 4: Progress Report ────────────────────────────────────────────────────

with tab4:
    st.header("Progress Report")

    weakest = m["analytics"].find_weakest_scenarios(stats)
    if weakest:
        st.subheader("Weakest Scenarios")
        weak_df = pd.DataFrame(
            [
                {
                    "Scenario": m["analytics"].key_label(s.key),
                    "Attempts": s.attempts,
                    "Accuracy %": s.accuracy,
                }
                for s in weakest
            ]
        )
        st.dataframe(weak_df, use_container_width=True, hide_index=True)

    st.subheader("Full Report (stdout capture)")
    buf = io.StringIO()
    with contextlib.redirect_stdout(buf):
        m["print_full_report"](stats, st.session_state["history"] + [session])
    st.code(buf.getvalue(), language=None)

    st.markdown("---")
    st.subheader("Save / Load Progress")
    st.download_button(
        "Download progress (JSON)",
        data=json.dumps(m["statistics"].progress_to_dict(stats, config), indent=2),
        file_name="strategy_trainer_progress.json",
        mime="application/json",
    )
    uploaded = st.file_uploader("Load progress", type="json")
    if uploaded is not None and st.button("Replace current progress"):
        try:
            loaded_stats, loaded_config = m["statistics"].progress_from_dict(json.load(uploaded))
        except ValueError as exc:
            logger.warning("rejected progress file %s: %s", uploaded.name, exc)
            st.error(f"Could not load {uploaded.name}: {exc}")
        else:
            st.session_state["stats"] = loaded_stats
            st.session_state["config"] = loaded_config
            logger.info("loaded progress from %s", uploaded.name)
            st.rerun()
    if st.button("Reset statistics"):
        st.session_state["stats"] = m["statistics"].reset_statistics()
        st.rerun()
