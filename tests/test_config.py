"""Tests for Settings and how they reach the scheduler process."""

from pathlib import Path

from ghost_runner.app import create_app
from ghost_runner.config import Settings


class TestSettings:
    """Tests for Settings."""

    def test_paths_resolve_against_root(self, tmp_path):
        settings = Settings(root_dir=tmp_path, schedule_file=Path("jobs.json"))

        assert settings.schedule_path == tmp_path / "jobs.json"
        assert settings.tasks_path == tmp_path / "tasks"

    def test_absolute_paths_are_kept(self, tmp_path):
        settings = Settings(root_dir=tmp_path, tasks_dir=Path("/srv/tasks"))

        assert settings.tasks_path == Path("/srv/tasks")

    def test_env_round_trip(self, tmp_path, monkeypatch):
        settings = Settings(
            root_dir=tmp_path,
            tasks_dir=Path("my_tasks"),
            schedule_file=Path("jobs.json"),
            sleep_guard_command=["caffeinate", "-i"],
            failure_dedup_hours=6.5,
            db_echo=True,
            port=4000,
        )

        for key, value in settings.to_env().items():
            monkeypatch.setenv(key, value)

        assert Settings() == settings


class TestSchedulerProcessSettings:
    """Tests for the settings handed to the scheduler process."""

    def test_scheduler_gets_every_setting(self, tmp_path):
        settings = Settings(
            root_dir=tmp_path,
            tasks_dir=Path("my_tasks"),
            schedule_file=Path("jobs.json"),
            sleep_guard_command=["true"],
            failure_dedup_hours=1.0,
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'db.sqlite'}",
        )

        env = create_app(settings).state.scheduler_process.env

        assert env["GHOST_RUNNER_ROOT_DIR"] == str(tmp_path)
        assert env["GHOST_RUNNER_TASKS_DIR"] == "my_tasks"
        assert env["GHOST_RUNNER_SCHEDULE_FILE"] == "jobs.json"
        assert env["GHOST_RUNNER_SLEEP_GUARD_COMMAND"] == '["true"]'
        assert env["GHOST_RUNNER_FAILURE_DEDUP_HOURS"] == "1.0"
        assert env["GHOST_RUNNER_DATABASE_URL"] == settings.database_url
