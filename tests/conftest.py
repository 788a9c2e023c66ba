"""
Shared pytest fixtures for wpr tests.

This module provides common fixtures used across all test files, including:
- Time freezing utilities
- An isolated store home for every test
- Environment and weekly plan factories
"""

import pytest
from freezegun import freeze_time

from wpr.controller import open_weekly_plan
from wpr.shared import CalendarWeek
from wpr.wpr_env import WprEnvironment


@pytest.fixture(autouse=True)
def wpr_home(tmp_path, monkeypatch):
    """
    Points WPR_HOME at a fresh temporary directory so that neither the store
    nor the log files ever touch the real ~/.wpr.
    """
    home = tmp_path / "home"
    monkeypatch.setenv("WPR_HOME", str(home))
    return home


@pytest.fixture
def frozen_time():
    """
    Freezes time to Monday 2024-01-01 12:00:00 for the duration of the test.

    Usage:
        def test_something(frozen_time):
            frozen_time.tick(delta=timedelta(days=1))  # now Tuesday
    """
    with freeze_time("2024-01-01 12:00:00") as frozen:
        yield frozen


@pytest.fixture
def freeze_at():
    """
    Returns a function that freezes time to a specific datetime.

    Usage:
        def test_something(freeze_at):
            with freeze_at("2024-01-03 10:00:00"):
                ...
    """
    return freeze_time


@pytest.fixture
def test_env(wpr_home):
    """
    Provides a WprEnvironment rooted at the temporary home.
    """
    env = WprEnvironment()
    env.ensure(init_config=True)
    return env


@pytest.fixture
def day():
    """
    Returns a function turning 'YYYY-MM-DD' into a CalendarWeek.
    """

    def _day(text: str) -> CalendarWeek:
        result = CalendarWeek.parse(text)
        assert result.ok, result.message
        return result.value

    return _day


@pytest.fixture
def plan_factory(test_env, day):
    """
    Opens (and creates if needed) the weekly plan holding the given day.

    Usage:
        def test_something(plan_factory):
            plan = plan_factory("2024-01-03")
    """

    def _open(text: str = None, group: str = None):
        return open_weekly_plan(test_env, day(text) if text else None, group)

    return _open
