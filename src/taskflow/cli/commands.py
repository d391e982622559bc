# src/taskflow/cli/commands.py

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import cast

from ..core.notify import Notification, Notifier, Variant
from ..core.state import AppState
from ..errors import AIRequestError, NothingToPrioritizeError, ValidationError, friendly_error_message
from ..tasks.task_models import (
    ALL_STATUSES,
    Task,
    TaskStatus,
    create_task,
    edit_task,
    is_overdue,
    parse_deadline,
)
from ..tasks.task_view import parse_status_filter, summarize

CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], Notifier | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}
        # commands whose handler gets the untouched text after the name as args[0]
        self._raw: set[str] = set()

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
        raw_args: bool = False,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler
        if raw_args:
            self._raw.update(n.lower() for n in [name, *aliases])

    def handle(
        self,
        state: AppState,
        line: str,
        notify: Notifier | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]
        if name in self._raw:
            rest = line[1:].lstrip()[len(parts[0]) :]
            # drop the single separator after the command name, keep the rest verbatim
            args = [rest[1:] if rest[:1].isspace() else rest]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, notify)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValidationError as e:
            return f"Invalid input: {friendly_error_message(e)}"
        except KeyError as e:
            return f"No task with id {e.args[0]!r}."

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- option parsing ----

_OPTIONS = ("--deps", "--status", "--desc", "--deadline")


def split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """
    Split ["a", "b", "--deps", "x,y", "--desc", "two", "words"] into
    (["a", "b"], {"deps": "x,y", "desc": "two words"}).
    """
    positional: list[str] = []
    options: dict[str, str] = {}
    current: str | None = None
    buf: list[str] = []

    def flush() -> None:
        if current is not None:
            options[current] = " ".join(buf)

    for arg in args:
        if arg.lower() in _OPTIONS:
            flush()
            current = arg.lower()[2:]
            buf = []
        elif current is None:
            positional.append(arg)
        else:
            buf.append(arg)
    flush()
    return positional, options


def _parse_deps(raw: str) -> list[str]:
    return [d.strip() for d in raw.replace(",", " ").split() if d.strip()]


# ---- rendering ----


def format_task_line(task: Task, now: datetime | None = None) -> str:
    prio = f"P{task.priority}" if task.priority is not None else "P-"
    dt = parse_deadline(task.deadline)
    due = task.deadline
    if dt is not None:
        with contextlib.suppress(OverflowError, ValueError, OSError):
            due = dt.astimezone().strftime("%Y-%m-%d %H:%M")
    if is_overdue(task, now):
        due += " (overdue)"
    return f"[{task.status.value:<11}] {prio:<4} {task.id}  due {due}  {task.description}"


def format_task_details(task: Task, now: datetime | None = None) -> str:
    lines = [format_task_line(task, now)]
    if task.dependencies:
        lines.append(f"    depends on: {', '.join(task.dependencies)}")
    if task.ai_reason:
        lines.append(f"    AI: {task.ai_reason}")
    return "\n".join(lines)


def _describe_view(state: AppState) -> str:
    parts = [f"filter={state.status_filter}"]
    if state.search_term:
        parts.append(f"search={state.search_term!r}")
    return ", ".join(parts)


# ---- AI prioritization ----


def _emit(notify: Notifier | None, notification: Notification) -> None:
    if notify is None:
        logger.info("Notification: %s", notification.render())
        return
    notify(notification)


async def run_prioritization(state: AppState, notify: Notifier | None = None) -> bool:
    """Run one prioritization round and report the outcome as a notification."""
    try:
        patches = await state.prioritizer.prioritize()
    except AIRequestError as e:
        title = "No Tasks to Prioritize" if isinstance(e, NothingToPrioritizeError) else "Prioritization Failed"
        _emit(notify, Notification(title, friendly_error_message(e), Variant.DESTRUCTIVE))
        return False

    if patches is None:
        _emit(notify, Notification("Prioritization In Progress", "Please wait for the current AI request to finish."))
        return False

    _emit(
        notify,
        Notification("Tasks Prioritized", "AI has suggested new priorities based on deadlines and dependencies."),
    )
    return True


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list                     -> current filter + search
    /list <status|all> [term] -> set both, then list
    """
    if args:
        state.status_filter = parse_status_filter(args[0])
        state.search_term = " ".join(args[1:])

    tasks = state.visible_tasks()
    if not tasks:
        return f"No tasks ({_describe_view(state)})."

    now = datetime.now(UTC)
    lines = [f"Tasks ({_describe_view(state)}):"]
    lines.extend(format_task_details(t, now) for t in tasks)
    return "\n".join(lines)


def cmd_filter(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Current status filter: {state.status_filter}. Use /filter <all|{'|'.join(s.value for s in TaskStatus)}>."
    state.status_filter = parse_status_filter(args[0])
    return cmd_list(state, [])


def cmd_search(state: AppState, args: list[str]) -> str:
    state.search_term = args[0] if args else ""
    return cmd_list(state, [])


def cmd_add(state: AppState, args: list[str], notify: Notifier | None = None) -> str:
    """/add <deadline> <description...> [--deps id,id] [--status s]"""
    positional, options = split_options(args)
    if len(positional) < 2:
        return "Usage: /add <deadline> <description> [--deps id,id] [--status todo|in-progress|done|backlog]"

    task = create_task(
        description=" ".join(positional[1:]),
        deadline=positional[0],
        dependencies=_parse_deps(options.get("deps", "")),
        status=options.get("status") or TaskStatus.TODO,
    )
    state.task_store.add_task(task)
    _emit(notify, Notification("Task Created", f'Task "{task.description}" has been added.'))
    return format_task_details(task)


def cmd_edit(state: AppState, args: list[str], notify: Notifier | None = None) -> str:
    """/edit <id> [--desc ...] [--deadline ...] [--deps ...] [--status ...]"""
    positional, options = split_options(args)
    if len(positional) != 1 or not options:
        return "Usage: /edit <id> [--desc text] [--deadline date] [--deps id,id] [--status s]"

    current = state.task_store.find(positional[0])
    if current is None:
        raise KeyError(positional[0])

    deps = options.get("deps")
    updated = edit_task(
        current,
        description=options.get("desc"),
        deadline=options.get("deadline"),
        dependencies=None if deps is None else _parse_deps(deps),
        status=options.get("status"),
    )
    state.task_store.update_task(updated)
    _emit(notify, Notification("Task Updated", f'Task "{updated.description}" has been updated.'))
    return format_task_details(updated)


def cmd_status(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return f"Usage: /status <id> <{'|'.join(s.value for s in TaskStatus)}>"
    task = state.task_store.set_task_status(args[0], args[1])
    return format_task_line(task)


def cmd_rm(state: AppState, args: list[str], notify: Notifier | None = None) -> str:
    if len(args) != 1:
        return "Usage: /rm <id>"
    if not state.task_store.delete_task(args[0]):
        raise KeyError(args[0])
    _emit(notify, Notification("Task Deleted", "The task has been successfully removed."))
    return f"Deleted {args[0]}."


def cmd_show(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /show <id>"
    task = state.task_store.find(args[0])
    if task is None:
        raise KeyError(args[0])
    return format_task_details(task)


def cmd_stats(state: AppState, args: list[str]) -> str:
    s = summarize(state.task_store.get())
    by_status = ", ".join(f"{st.value}: {n}" for st, n in s.by_status.items())
    return f"Tasks: {s.total} ({by_status}); overdue: {s.overdue}; prioritized: {s.prioritized}"


def cmd_prioritize(state: AppState, args: list[str], notify: Notifier | None = None) -> str:
    if state.prioritizer.in_flight:
        return "AI prioritization is already running."

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        ok = asyncio.run(run_prioritization(state, notify))
        return "Done." if ok else "Prioritization did not complete."

    job = loop.create_task(run_prioritization(state, notify))
    state.background.add(job)
    job.add_done_callback(state.background.discard)
    return "Asking the AI for priorities... (you can keep working meanwhile)"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register(
    "list", cmd_list, help_text="List tasks: /list [all|status] [search term].", aliases=["ls"]
)
registry.register("filter", cmd_filter, help_text=f"Filter by status: /filter {ALL_STATUSES}|todo|in-progress|done|backlog.")
registry.register(
    "search", cmd_search, help_text="Search descriptions: /search <term> (empty clears).", raw_args=True
)
registry.register(
    "add", cmd_add, help_text="Create a task: /add <deadline> <description> [--deps id,id] [--status s]."
)
registry.register(
    "edit", cmd_edit, help_text="Edit a task: /edit <id> [--desc ...] [--deadline ...] [--deps ...] [--status ...]."
)
registry.register("status", cmd_status, help_text="Change status: /status <id> <status>.")
registry.register("rm", cmd_rm, help_text="Delete a task (and drop it from dependencies): /rm <id>.", aliases=["del"])
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register("stats", cmd_stats, help_text="Counts per status, overdue and prioritized tasks.")
registry.register(
    "prioritize", cmd_prioritize, help_text="Ask the AI to suggest priorities for all tasks.", aliases=["ai"]
)
