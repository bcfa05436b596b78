"""Smoke test for the Streamlit dashboard (app.py).

Uses streamlit.testing.v1.AppTest to verify the app starts without exceptions,
exposes its four tabs, that answering a hand folds one decision into the
ledger kept in session state, and that the table config gates the level hint.
"""

from pathlib import Path

import pytest

from src.engine.config import GameConfig, TrainingMode

testing = pytest.importorskip("streamlit.testing.v1")

APP_PATH = str(Path(__file__).resolve().parent.parent / "app.py")


@pytest.fixture
def app():
    at = testing.AppTest.from_file(APP_PATH, default_timeout=120)
    at.run()
    return at


def test_app_runs_without_exception(app):
    """App renders all four tabs without raising an exception."""
    assert not app.exception, f"App raised an exception: {app.exception}"


def test_app_has_expected_tabs(app):
    """App exposes the four expected tab labels."""
    tab_labels = [t.label for t in app.tabs]
    assert tab_labels == ["Practice", "Strategy Chart", "Heat Maps", "Progress Report"]


def test_answer_records_a_decision(app):
    """Clicking an action grades it and deals the next hand."""
    app.button(key="act_stand").click().run()
    assert not app.exception
    assert app.session_state["stats"].total_decisions == 1
    assert app.session_state["session"].hands_played == 1
    assert app.session_state["feedback"] is not None


def test_default_config_hides_level_hint(app):
    """A fresh session keeps default table rules and shows no level hint."""
    assert app.session_state["config"] == GameConfig()
    assert not any("Suggested next level" in i.value for i in app.info)


def test_adaptive_toggle_updates_config(app):
    """Ticking the sidebar checkbox switches adaptive difficulty on."""
    app.sidebar.checkbox[0].check().run()
    assert not app.exception
    assert app.session_state["config"].adaptive_difficulty


def test_mastery_without_history(app):
    """Mastery mode on an empty ledger says there is no history yet."""
    app.sidebar.selectbox[1].select_index(list(TrainingMode).index(TrainingMode.MASTERY)).run()
    assert not app.exception
    assert app.session_state["scenario"] is None
    assert any("No practice history yet" in i.value for i in app.info)
    assert not any("mastery threshold" in s.value for s in app.success)
