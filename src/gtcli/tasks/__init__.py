"""Google Tasks services for task lists and tasks.

Usage:
    from gtcli.accounts import AccountStorage
    from gtcli.google import ServiceCache
    from gtcli.tasks import TaskListService, TaskService

    cache = ServiceCache(AccountStorage(config_dir))
    lists = TaskListService(cache)
    tasks = TaskService(cache)

    page = lists.list("me@example.com")
    task = tasks.create(
        "me@example.com",
        page.items[0].id,
        title="Review PR",
        due="2026-01-25",
    )
    tasks.complete("me@example.com", page.items[0].id, task.id)

Account setup:
    1. gtcli accounts credentials ~/Downloads/credentials.json
    2. gtcli accounts add me@example.com
"""

from __future__ import annotations

from gtcli.tasks.client import (
    Task,
    TaskLink,
    TaskList,
    TaskListService,
    TaskListsPage,
    TaskService,
    TasksPage,
)

__all__ = [
    "TaskListService",
    "TaskService",
    "Task",
    "TaskLink",
    "TaskList",
    "TaskListsPage",
    "TasksPage",
]
