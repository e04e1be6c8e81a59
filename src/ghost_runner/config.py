import json
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_sleep_guard_command() -> list[str]:
    if sys.platform == "darwin":
        return ["caffeinate", "-i"]
    return [
        "systemd-inhibit",
        "--what=idle:sleep",
        "--why=ghost-runner has pending scheduled tasks",
        "sleep",
        "infinity",
    ]


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 3333

    # Filesystem layout (relative paths resolve against root_dir)
    root_dir: Path = Field(default_factory=Path.cwd)
    tasks_dir: Path = Path("tasks")
    schedule_file: Path = Path("schedule.json")
    log_file: Path = Path("scheduler.log")

    # Failure and info-gathering persistence
    database_url: str = "sqlite+aiosqlite:///ghost_runner.db"
    db_echo: bool = False

    # Worker processes
    worker_python: str = Field(default_factory=lambda: sys.executable)

    # Scheduler settings
    sleep_guard_command: list[str] = Field(default_factory=_default_sleep_guard_command)
    scheduler_restart_delay: float = 1.0  # Seconds between stop and start on restart

    failure_dedup_hours: float = 24.0

    model_config = SettingsConfigDict(env_prefix="GHOST_RUNNER_")

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against the project root."""
        return path if path.is_absolute() else self.root_dir / path

    @property
    def tasks_path(self) -> Path:
        return self.resolve(self.tasks_dir)

    @property
    def schedule_path(self) -> Path:
        return self.resolve(self.schedule_file)

    @property
    def log_path(self) -> Path:
        return self.resolve(self.log_file)

    def to_env(self) -> dict[str, str]:
        """Environment variables that rebuild these settings in a child process."""
        env = {}
        for name, value in self.model_dump(mode="json").items():
            key = f"GHOST_RUNNER_{name.upper()}"
            env[key] = value if isinstance(value, str) else json.dumps(value)
        return env
