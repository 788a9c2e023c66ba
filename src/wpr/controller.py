from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .item import TaskRecord
from .model import Bundle, ChecksumError, CorruptRecord, NotEditableError
from .shared import CalendarWeek, WeekDay, log_msg
from .wpr_env import WprEnvironment

NumberedTask = Tuple[int, TaskRecord]


@dataclass(frozen=True)
class NotEditable:
    """Returned by ``WeeklyPlan.editor()`` for weeks other than the current one."""

    started_on: CalendarWeek
    reason: str = "can edit only current weekly plan"


class Editor:
    """
    Write access to a weekly plan. Obtained from ``WeeklyPlan.editor()``
    only while the plan is the current week; every call checks that again.
    """

    def __init__(self, plan: "WeeklyPlan"):
        self._plan = plan

    def _check(self):
        if not self._plan.is_editable():
            raise NotEditableError(
                f"week of {self._plan.started_on()} is no longer the current week"
            )

    def add_task(self, title: str) -> TaskRecord:
        self._check()
        record = TaskRecord(title=title, originated_on=CalendarWeek.today())
        self._plan._tasks.append(record)
        self._plan._dirty = True
        return record

    def mark_completed(self, record: TaskRecord) -> bool:
        self._check()
        if record is None or not self._plan._owns(record):
            log_msg(f"rejected completion of a task not in week {self._plan.started_on()}")
            return False
        if record.completed:
            log_msg(f"rejected completion of already completed task {record.title!r}")
            return False
        record.mark_completed()
        self._plan._dirty = True
        return True

    def set_memo(self, text: Optional[str]) -> None:
        self._check()
        self._plan._memo = text if text and text.strip() else ""
        self._plan._dirty = True

    def copy_from(self, previous: "WeeklyPlan") -> int:
        """
        Copy the unfinished tasks of ``previous`` into this (empty) plan as
        new active tasks dated today. Returns the number of tasks copied.
        """
        self._check()
        if self._plan.size():
            log_msg(f"week {self._plan.started_on()} is not empty, nothing copied")
            return 0
        today = CalendarWeek.today()
        copied = [
            TaskRecord(title=t.title, originated_on=today)
            for t in previous
            if not t.completed
        ]
        if copied:
            self._plan._tasks.extend(copied)
            self._plan._dirty = True
        log_msg(
            f"copied {len(copied)} task(s) from {previous.started_on()} to {self._plan.started_on()}"
        )
        return len(copied)


class WeeklyPlan:
    """
    One week's tasks and memo, loaded from a Bundle.

    Loading verifies the bundle checksum and parses every task line;
    either failure raises and no plan is produced. Changes made through the
    editor are held in memory until ``sync()``.
    """

    def __init__(self, bundle: Bundle):
        self._bundle = bundle
        self._monday = bundle.monday
        self._tasks: List[TaskRecord] = []
        self._memo = ""
        self._dirty = False
        self._load()

    def _load(self):
        bundle = self._bundle
        if not bundle.verify_checksum():
            raise ChecksumError(bundle.paths.checksum, actual=bundle.compute_checksum())

        self._memo = bundle.read_memo()

        for number, line in enumerate(bundle.read_task_lines(), start=1):
            if not line:
                continue
            result = TaskRecord.decode(line)
            if not result.ok:
                log_msg(f"{bundle.paths.todolist}:{number}: {result.message}")
                raise CorruptRecord(bundle.paths.todolist, number, line, result.message)
            self._tasks.append(result.value)

        self._dirty = False
        log_msg(f"loaded {bundle!r}: {len(self._tasks)} task(s)")

    # ─── read access ──────────────────────────────────────

    def size(self) -> int:
        return len(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[TaskRecord]:
        return iter(list(self._tasks))

    def task_at(self, index: int) -> TaskRecord:
        if index < 0 or index >= len(self._tasks):
            raise IndexError(f"task index {index} out of range 0..{len(self._tasks) - 1}")
        return self._tasks[index]

    def memo(self) -> str:
        return self._memo

    def started_on(self) -> CalendarWeek:
        return self._monday

    @property
    def bundle(self) -> Bundle:
        return self._bundle

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def _owns(self, record: TaskRecord) -> bool:
        return any(t is record for t in self._tasks)

    # ─── queries ──────────────────────────────────────────

    def _numbered(self) -> Iterator[NumberedTask]:
        return enumerate(self._tasks, start=1)

    def created_on(self, day: CalendarWeek) -> List[NumberedTask]:
        """Active tasks created on ``day``."""
        return [(n, t) for n, t in self._numbered() if not t.completed and t.originated_on == day]

    def pending_up_to(self, day: CalendarWeek) -> List[NumberedTask]:
        """Active tasks created on or before ``day``."""
        return [
            (n, t)
            for n, t in self._numbered()
            if not t.completed and t.originated_on.compare(day) <= 0
        ]

    def completed_tasks(self) -> List[NumberedTask]:
        return [(n, t) for n, t in self._numbered() if t.completed]

    def active_tasks(self) -> List[NumberedTask]:
        return [(n, t) for n, t in self._numbered() if not t.completed]

    # ─── editing ──────────────────────────────────────────

    def is_editable(self) -> bool:
        return CalendarWeek.today().monday() == self._monday

    def editor(self) -> Editor | NotEditable:
        if self.is_editable():
            return Editor(self)
        return NotEditable(self._monday)

    def sync(self) -> bool:
        """Write pending changes to the bundle. Returns False if there were none."""
        if not self._dirty:
            return False
        self._bundle.write_memo(self._memo)
        self._bundle.write_task_lines([t.encode() for t in self._tasks])
        crc = self._bundle.update_checksum()
        self._dirty = False
        log_msg(f"synced {self._bundle!r}: {len(self._tasks)} task(s), checksum {crc}")
        return True

    def __repr__(self) -> str:
        return f"WeeklyPlan({self._monday}, tasks={len(self._tasks)}, dirty={self._dirty})"


def open_weekly_plan(
    env: WprEnvironment, day: Optional[CalendarWeek] = None, group: Optional[str] = None
) -> WeeklyPlan:
    day = day or CalendarWeek.today()
    return WeeklyPlan(env.bundle_for(day.monday(), group))


def previous_week(env: WprEnvironment, plan: WeeklyPlan) -> WeeklyPlan:
    return WeeklyPlan(env.bundle_for(plan.started_on().shift_days(-7), plan.bundle.group))


def auto_copy_on_monday(
    env: WprEnvironment, plan: WeeklyPlan, today: Optional[CalendarWeek] = None
) -> int:
    """
    Copy last week's unfinished tasks into ``plan`` when the config asks for
    it, today is Monday and the plan is the current, still empty week.
    """
    today = today or CalendarWeek.today()
    if not env.config.weekly.auto_copy_on_monday:
        return 0
    if today.weekday != WeekDay.MONDAY or plan.size():
        return 0
    editor = plan.editor()
    if isinstance(editor, NotEditable):
        return 0
    try:
        previous = previous_week(env, plan)
    except (ChecksumError, CorruptRecord) as e:
        log_msg(f"auto copy skipped, previous week unreadable: {e}")
        return 0
    return editor.copy_from(previous)
