"""Tests for task discovery."""

import pytest

from ghost_runner.errors import InvalidTaskNameError, TaskNotFoundError
from ghost_runner.task_repository import (
    TaskRepository,
    TaskType,
    is_valid_task_name,
    validate_task_name,
)


class TestValidateTaskName:
    """Tests for the safe task name rule."""

    @pytest.mark.parametrize("name", ["login", "check-prices", "task_2", "A" * 99])
    def test_accepts_safe_names(self, name):
        assert validate_task_name(name) == name

    @pytest.mark.parametrize(
        "name", ["", "../etc/passwd", "has space", "semi;colon", "A" * 100, None, 42]
    )
    def test_rejects_unsafe_names(self, name):
        with pytest.raises(InvalidTaskNameError):
            validate_task_name(name)
        assert not is_valid_task_name(name)

    def test_invalid_name_is_a_not_found_error(self):
        with pytest.raises(TaskNotFoundError):
            validate_task_name("../x")


class TestTaskRepository:
    """Tests for TaskRepository."""

    async def test_finds_tasks_in_all_directories(self, tasks_dir, write_task):
        write_task("root_task", "", subdir="")
        write_task("private_task", "", subdir="private")
        write_task("public_task", "")

        tasks = await TaskRepository(tasks_dir).find_all()

        assert [(t.name, t.type) for t in tasks] == [
            ("private_task", TaskType.PRIVATE),
            ("public_task", TaskType.PUBLIC),
            ("root_task", TaskType.ROOT),
        ]

    async def test_public_wins_over_private_over_root(self, tasks_dir, write_task):
        write_task("login", "", subdir="")
        write_task("login", "", subdir="private")
        repo = TaskRepository(tasks_dir)

        assert (await repo.find_by_name("login")).type is TaskType.PRIVATE

        public = write_task("login", "")
        task = await repo.find_by_name("login")

        assert task.type is TaskType.PUBLIC
        assert task.path == public

    async def test_skips_private_modules_and_other_files(self, tasks_dir, write_task):
        write_task("_helpers", "")
        (tasks_dir / "public" / "notes.txt").write_text("not a task")

        assert await TaskRepository(tasks_dir).find_all() == []

    async def test_exists(self, tasks_dir, write_task):
        write_task("login", "")
        repo = TaskRepository(tasks_dir)

        assert await repo.exists("login")
        assert not await repo.exists("logout")
        assert not await repo.exists("../public/login")

    async def test_missing_directory_has_no_tasks(self, tmp_path):
        assert await TaskRepository(tmp_path / "nowhere").find_all() == []
