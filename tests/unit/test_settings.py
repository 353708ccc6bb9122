"""Unit tests for configuration loading."""

from config.settings import Settings


def test_defaults():
    s = Settings(_env_file=None)

    assert s.app_name == "Quota Engine"
    assert s.analytics_cache_backend == "memory"
    assert s.active_task_statuses == ["pending", "in_progress"]
    assert (s.daily_analytics_hour, s.daily_analytics_minute) == (0, 5)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("ANALYTICS_CACHE_BACKEND", "redis")
    monkeypatch.setenv("MAX_WINDOW_DAYS", "90")
    monkeypatch.setenv("ACTIVE_TASK_STATUSES", '["pending"]')

    s = Settings(_env_file=None)

    assert s.analytics_cache_backend == "redis"
    assert s.max_window_days == 90
    assert s.active_task_statuses == ["pending"]
