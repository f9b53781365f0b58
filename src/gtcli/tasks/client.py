"""Google Tasks API services for task lists and tasks."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any

from gtcli.google.service import ServiceCache

TASK_STATUSES = ("needsAction", "completed")

WEB_URL = "https://tasks.google.com/embed/?origin=https://calendar.google.com&fullWidth=1"


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def format_due(due: str | date) -> str:
    """Convert a due date to RFC 3339.

    Google Tasks only stores the date part; "YYYY-MM-DD" strings and date
    objects become midnight UTC. Other strings are passed through.
    """
    if isinstance(due, date):
        due = due.isoformat()
    if len(due) == 10:
        date.fromisoformat(due)
        return f"{due}T00:00:00.000Z"
    return due


def web_url(tasklist_id: str, task_id: str | None = None) -> str:
    """Build the Google Tasks web URL for a list or a task."""
    url = f"{WEB_URL}&listId={tasklist_id}"
    if task_id:
        url += f"&taskId={task_id}"
    return url


@dataclass
class TaskList:
    """Represents a Google Tasks list."""

    id: str
    title: str
    updated: str | None = None
    self_link: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class TaskLink:
    """A link attached to a task (e.g. the email it was created from)."""

    type: str | None = None
    description: str | None = None
    link: str | None = None


@dataclass
class Task:
    """Represents a Google Task."""

    id: str
    title: str
    status: str  # "needsAction" or "completed"
    due: str | None = None
    notes: str | None = None
    parent: str | None = None
    position: str | None = None
    completed: str | None = None
    deleted: bool | None = None
    hidden: bool | None = None
    links: list[TaskLink] = field(default_factory=list)
    self_link: str | None = None
    updated: str | None = None

    @property
    def is_completed(self) -> bool:
        """Check if task is completed."""
        return self.status == "completed"

    def to_dict(self) -> dict[str, Any]:
        data = _compact(asdict(self))
        data["links"] = [_compact(link) for link in data.get("links", [])]
        if not data["links"]:
            del data["links"]
        return data


@dataclass
class TaskListsPage:
    items: list[TaskList]
    next_page_token: str | None = None


@dataclass
class TasksPage:
    items: list[Task]
    next_page_token: str | None = None


def parse_task_list(data: dict) -> TaskList:
    """Parse task list from API response."""
    return TaskList(
        id=data.get("id", ""),
        title=data.get("title", ""),
        updated=data.get("updated"),
        self_link=data.get("selfLink"),
    )


def parse_task(data: dict) -> Task:
    """Parse task from API response."""
    return Task(
        id=data.get("id", ""),
        title=data.get("title", ""),
        status=data.get("status", "needsAction"),
        due=data.get("due"),
        notes=data.get("notes"),
        parent=data.get("parent"),
        position=data.get("position"),
        completed=data.get("completed"),
        deleted=data.get("deleted"),
        hidden=data.get("hidden"),
        links=[
            TaskLink(
                type=link.get("type"),
                description=link.get("description"),
                link=link.get("link"),
            )
            for link in data.get("links", [])
        ],
        self_link=data.get("selfLink"),
        updated=data.get("updated"),
    )


class TaskListService:
    """Task list operations for stored accounts.

    Usage:
        cache = ServiceCache(AccountStorage(config_dir))
        lists = TaskListService(cache)
        page = lists.list("me@example.com")
        created = lists.create("me@example.com", "Groceries")
    """

    def __init__(self, cache: ServiceCache):
        self.cache = cache

    def list(
        self,
        email: str,
        max_results: int = 100,
        page_token: str | None = None,
    ) -> TaskListsPage:
        """List task lists.

        Args:
            email: Account email.
            max_results: Page size.
            page_token: Token of the page to fetch.

        Returns:
            One page of task lists.
        """
        params: dict[str, Any] = {"maxResults": max_results}
        if page_token:
            params["pageToken"] = page_token

        result = self.cache.get(email).tasklists().list(**params).execute()
        return TaskListsPage(
            items=[parse_task_list(item) for item in result.get("items", [])],
            next_page_token=result.get("nextPageToken"),
        )

    def get(self, email: str, tasklist_id: str) -> TaskList:
        result = self.cache.get(email).tasklists().get(tasklist=tasklist_id).execute()
        return parse_task_list(result)

    def create(self, email: str, title: str) -> TaskList:
        result = self.cache.get(email).tasklists().insert(body={"title": title}).execute()
        return parse_task_list(result)

    def update(self, email: str, tasklist_id: str, title: str) -> TaskList:
        """Rename a task list."""
        service = self.cache.get(email)
        result = (
            service.tasklists()
            .update(tasklist=tasklist_id, body={"id": tasklist_id, "title": title})
            .execute()
        )
        return parse_task_list(result)

    def delete(self, email: str, tasklist_id: str) -> None:
        self.cache.get(email).tasklists().delete(tasklist=tasklist_id).execute()

    def web_url(self, tasklist_id: str) -> str:
        return web_url(tasklist_id)


class TaskService:
    """Task operations for stored accounts.

    Usage:
        tasks = TaskService(cache)
        task = tasks.create("me@example.com", list_id, "Review PR", due="2026-01-25")
        tasks.complete("me@example.com", list_id, task.id)
    """

    def __init__(self, cache: ServiceCache):
        self.cache = cache

    def list(
        self,
        email: str,
        tasklist_id: str,
        max_results: int = 100,
        page_token: str | None = None,
        show_completed: bool = False,
        show_deleted: bool = False,
        show_hidden: bool = False,
        due_min: str | None = None,
        due_max: str | None = None,
        completed_min: str | None = None,
        completed_max: str | None = None,
        updated_min: str | None = None,
    ) -> TasksPage:
        """List tasks in a task list.

        Args:
            email: Account email.
            tasklist_id: Task list ID.
            max_results: Page size.
            page_token: Token of the page to fetch.
            show_completed: Include completed tasks.
            show_deleted: Include deleted tasks.
            show_hidden: Include hidden tasks.
            due_min, due_max: RFC 3339 bounds on the due date.
            completed_min, completed_max: RFC 3339 bounds on completion time.
            updated_min: RFC 3339 lower bound on last modification.

        Returns:
            One page of tasks.
        """
        params: dict[str, Any] = {
            "tasklist": tasklist_id,
            "maxResults": max_results,
            "showCompleted": show_completed,
            "showDeleted": show_deleted,
            "showHidden": show_hidden,
        }
        optional = {
            "pageToken": page_token,
            "dueMin": due_min,
            "dueMax": due_max,
            "completedMin": completed_min,
            "completedMax": completed_max,
            "updatedMin": updated_min,
        }
        params.update({k: v for k, v in optional.items() if v})

        result = self.cache.get(email).tasks().list(**params).execute()
        return TasksPage(
            items=[parse_task(item) for item in result.get("items", [])],
            next_page_token=result.get("nextPageToken"),
        )

    def get(self, email: str, tasklist_id: str, task_id: str) -> Task:
        result = self.cache.get(email).tasks().get(tasklist=tasklist_id, task=task_id).execute()
        return parse_task(result)

    def create(
        self,
        email: str,
        tasklist_id: str,
        title: str,
        notes: str | None = None,
        due: str | date | None = None,
        parent: str | None = None,
        previous: str | None = None,
    ) -> Task:
        """Create a new task.

        Args:
            email: Account email.
            tasklist_id: Task list ID.
            title: Task title.
            notes: Task notes/description.
            due: Due date as "YYYY-MM-DD", date object, or RFC 3339 string.
            parent: Parent task ID for subtasks.
            previous: Sibling task ID to insert after.

        Returns:
            Created Task.
        """
        body: dict[str, Any] = {"title": title}
        if notes:
            body["notes"] = notes
        if due:
            body["due"] = format_due(due)

        kwargs: dict[str, Any] = {"tasklist": tasklist_id, "body": body}
        if parent:
            kwargs["parent"] = parent
        if previous:
            kwargs["previous"] = previous

        result = self.cache.get(email).tasks().insert(**kwargs).execute()
        return parse_task(result)

    def update(
        self,
        email: str,
        tasklist_id: str,
        task_id: str,
        title: str | None = None,
        notes: str | None = None,
        due: str | date | None = None,
        status: str | None = None,
    ) -> Task:
        """Update an existing task.

        Fields left as None keep their current value.

        Raises:
            ValueError: If status is not "needsAction" or "completed".
        """
        if status is not None and status not in TASK_STATUSES:
            raise ValueError(f"Invalid status: {status}. Use one of: {', '.join(TASK_STATUSES)}")

        service = self.cache.get(email)
        current = service.tasks().get(tasklist=tasklist_id, task=task_id).execute()

        if title is not None:
            current["title"] = title
        if notes is not None:
            current["notes"] = notes
        if due is not None:
            current["due"] = format_due(due)
        if status is not None:
            current["status"] = status
            # Reopening a task requires clearing its completion time
            if status == "needsAction":
                current["completed"] = None

        result = service.tasks().update(tasklist=tasklist_id, task=task_id, body=current).execute()
        return parse_task(result)

    def complete(self, email: str, tasklist_id: str, task_id: str) -> Task:
        """Mark a task as completed."""
        return self.update(email, tasklist_id, task_id, status="completed")

    def uncomplete(self, email: str, tasklist_id: str, task_id: str) -> Task:
        """Mark a task as not completed."""
        return self.update(email, tasklist_id, task_id, status="needsAction")

    def delete(self, email: str, tasklist_id: str, task_id: str) -> None:
        self.cache.get(email).tasks().delete(tasklist=tasklist_id, task=task_id).execute()

    def move(
        self,
        email: str,
        tasklist_id: str,
        task_id: str,
        parent: str | None = None,
        previous: str | None = None,
    ) -> Task:
        """Move a task under a new parent and/or after a sibling.

        With neither given, the task moves to the top level, first position.
        """
        kwargs: dict[str, Any] = {"tasklist": tasklist_id, "task": task_id}
        if parent:
            kwargs["parent"] = parent
        if previous:
            kwargs["previous"] = previous

        result = self.cache.get(email).tasks().move(**kwargs).execute()
        return parse_task(result)

    def clear(self, email: str, tasklist_id: str) -> None:
        """Hide all completed tasks in a list."""
        self.cache.get(email).tasks().clear(tasklist=tasklist_id).execute()

    def web_url(self, tasklist_id: str, task_id: str | None = None) -> str:
        return web_url(tasklist_id, task_id)
