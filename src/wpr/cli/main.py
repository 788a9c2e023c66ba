import sys
import click
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List

from dateutil.rrule import WEEKLY, rrule
from rich.console import Console
from rich.markup import escape

from wpr.controller import (
    NotEditable,
    WeeklyPlan,
    auto_copy_on_monday,
    open_weekly_plan,
    previous_week,
)
from wpr.item import TaskRecord
from wpr.model import Bundle, ChecksumError, CorruptRecord, InvalidRecord, PathError
from wpr.shared import CalendarWeek, log_msg
from wpr.versioning import get_version
from wpr.wpr_env import WprEnvironment

VERSION = get_version()

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)

CHECKSUM_HINT = (
    "Try to check manually .todolist file, or remove .checksum or .memo file "
    "for the date to let the application fix this issue by itself."
)


class _DateParam(click.ParamType):
    name = "date"

    def convert(self, value, param, ctx):
        if value is None:
            return None
        if isinstance(value, CalendarWeek):
            return value
        s = str(value).strip().lower()
        if s in ("today", "now"):
            return CalendarWeek.today()
        result = CalendarWeek.parse(s)
        if not result.ok:
            self.fail(f"Expected YYYY-MM-DD or 'today': {result.message}", param, ctx)
        return result.value


_DATE = _DateParam()


def info(ctx, msg: str):
    if ctx.obj["VERBOSE"]:
        console.print(msg)


def fail(msg: str, code: int = 1):
    err_console.print(f"[red]✘ Error:[/red] {msg}")
    sys.exit(code)


def print_week_header(plan: WeeklyPlan):
    console.print(f"{plan.started_on().week_label()}:")


def format_task(number: int, task: TaskRecord, with_status: bool = True) -> str:
    title = escape(task.title)
    if with_status:
        status = "DONE" if task.completed else "WORK"
        return f"{number}. {task.originated_on}|{status}: {title}"
    return f"{number}. {task.originated_on}: {title}"


@contextmanager
def weekly_plan(ctx) -> Iterator[WeeklyPlan]:
    """Open the selected week, hand it to the command and save any changes."""
    env: WprEnvironment = ctx.obj["ENV"]
    day: CalendarWeek = ctx.obj["DATE"]
    try:
        plan = open_weekly_plan(env, day, ctx.obj["GROUP"])
        copied = auto_copy_on_monday(env, plan)
        if copied:
            info(ctx, f"{copied} unfinished task(s) copied from the previous week.")
        yield plan
        plan.sync()
    except ChecksumError as e:
        log_msg(str(e))
        err_console.print("[red]✘ Error:[/red] database checksum verification failed.")
        err_console.print(CHECKSUM_HINT)
        sys.exit(1)
    except CorruptRecord as e:
        fail(f"{escape(str(e))}. Fix or remove the line to use this week again.")
    except PathError as e:
        fail(escape(str(e)))
    except OSError as e:
        log_msg(f"storage failure: {e}")
        fail("database read/write unrecoverable error.")


def get_editor(plan: WeeklyPlan):
    editor = plan.editor()
    if isinstance(editor, NotEditable):
        fail(f"{editor.reason}.")
    return editor


@click.group()
@click.version_option(VERSION, prog_name="wpr", message="%(prog)s version %(version)s")
@click.option("--date", "-d", "date_opt", type=_DATE, help="Use the given date (YYYY-MM-DD) as today.")
@click.option("--previous-week", "-p", is_flag=True, help="Select the previous week instead of a date.")
@click.option("--root", "-b", help="Directory to store weekly databases in.")
@click.option("--group", "-g", help="Todo group to use.")
@click.option("--verbose", "-v", is_flag=True, help="Be verbose about notifications in output.")
@click.pass_context
def cli(ctx, date_opt, previous_week, root, group, verbose):
    """WPR – weekly plans and reports from the command line."""
    if date_opt and previous_week:
        raise click.UsageError("cannot use --date and --previous-week at the same time.")
    if root and group:
        raise click.UsageError("cannot use --root and --group at the same time.")

    env = WprEnvironment()
    env.ensure(init_config=True)
    config = env.load_config()

    if root and not env.set_root(root):
        raise click.BadParameter(f"supplied path {root} is not valid.", param_hint="--root")

    day = date_opt or CalendarWeek.today()
    if previous_week:
        # the Sunday before this week's Monday
        day = day.monday().shift_days(-1)

    ctx.ensure_object(dict)
    ctx.obj["ENV"] = env
    ctx.obj["CONFIG"] = config
    ctx.obj["DATE"] = day
    ctx.obj["GROUP"] = group
    ctx.obj["VERBOSE"] = verbose or config.ui.verbose


@cli.command()
@click.pass_context
def today(ctx):
    """Print all active tasks created on the selected day."""
    day = ctx.obj["DATE"]
    with weekly_plan(ctx) as plan:
        tasks = plan.created_on(day)
        if tasks:
            console.print(f"Active tasks scheduled to be done on {day}:")
            for n, t in tasks:
                console.print(format_task(n, t, with_status=False))
        else:
            info(ctx, f"No active tasks found for {day}.")


@cli.command()
@click.pass_context
def daily(ctx):
    """Print all active tasks up to the selected day."""
    day = ctx.obj["DATE"]
    with weekly_plan(ctx) as plan:
        tasks = plan.pending_up_to(day)
        if tasks:
            console.print(f"Proposed todo plan up to {day}:")
            for n, t in tasks:
                console.print(format_task(n, t, with_status=False))
        else:
            info(ctx, f"No active tasks found up to {day}.")


@cli.command()
@click.pass_context
def weekly(ctx):
    """List all weekly tasks with their status."""
    with weekly_plan(ctx) as plan:
        print_week_header(plan)
        for n, t in enumerate(plan, start=1):
            console.print(format_task(n, t))
        if not plan.size():
            info(ctx, "No tasks found.")


@cli.command()
@click.argument("title", nargs=-1, required=True)
@click.pass_context
def add(ctx, title):
    """Create a new task for today with the given TITLE."""
    with weekly_plan(ctx) as plan:
        editor = get_editor(plan)
        try:
            editor.add_task(" ".join(title))
        except InvalidRecord as e:
            fail(escape(str(e)))
        info(ctx, "Task successfully created.")


@cli.command()
@click.argument("number", type=int)
@click.pass_context
def complete(ctx, number):
    """Mark task NUMBER (as listed by 'weekly') completed."""
    with weekly_plan(ctx) as plan:
        editor = get_editor(plan)
        if number <= 0 or number > plan.size():
            fail(f"cannot identify a task with the index - {number}")
        task = plan.task_at(number - 1)
        if not editor.mark_completed(task):
            fail(f"cannot complete already completed task (id = {number})")
        info(ctx, f"Task with id = {number} is completed.")


@cli.command()
@click.pass_context
def summary(ctx):
    """Prepare the weekly report: completed and uncompleted tasks."""
    with weekly_plan(ctx) as plan:
        print_week_header(plan)
        sections = [
            ("COMPLETED:", plan.completed_tasks(), "  No completed tasks found."),
            ("UNCOMPLETED TASKS OR OPPORTUNITIES:", plan.active_tasks(), "  No active tasks found."),
        ]
        for heading, tasks, empty in sections:
            console.print(heading)
            for _, t in tasks:
                console.print(f"- {escape(t.title)}")
            if not tasks:
                info(ctx, empty)


@cli.command()
@click.pass_context
def memo(ctx):
    """Show the weekly memo."""
    with weekly_plan(ctx) as plan:
        print_week_header(plan)
        if plan.memo():
            console.print("Memo text:")
            console.print(escape(plan.memo()), end="")
        else:
            info(ctx, "No memo record found for this week.")


@cli.command("set-memo")
@click.argument("text", nargs=-1)
@click.pass_context
def set_memo(ctx, text):
    """Replace the weekly memo with TEXT; without TEXT the memo is removed."""
    with weekly_plan(ctx) as plan:
        get_editor(plan).set_memo(" ".join(text) if text else None)


@cli.command()
@click.pass_context
def groups(ctx):
    """Print the list of groups."""
    names = ctx.obj["ENV"].list_groups()
    for name in names:
        console.print(escape(name))
    if not names:
        info(ctx, "No groups found.")


@cli.command("copy-from-the-past")
@click.pass_context
def copy_from_the_past(ctx):
    """Copy uncompleted tasks from the previous week (only into an empty week)."""
    env = ctx.obj["ENV"]
    with weekly_plan(ctx) as plan:
        editor = get_editor(plan)
        if plan.size():
            fail("copy-from-the-past works only if the current week is empty.")
        copied = editor.copy_from(previous_week(env, plan))
        info(ctx, f"{copied} task(s) copied from the previous week.")


def _week_starts(last_monday: CalendarWeek, count: int) -> List[CalendarWeek]:
    first = last_monday.shift_days(-7 * (count - 1))
    start = datetime(first.year, first.month, first.day)
    return [CalendarWeek.from_date(dt) for dt in rrule(WEEKLY, dtstart=start, count=count)]


@cli.command()
@click.option("--count", "-n", type=click.IntRange(1, 520), default=4, help="Number of weeks to show.")
@click.pass_context
def weeks(ctx, count):
    """Overview of the last COUNT weeks ending with the selected one."""
    env = ctx.obj["ENV"]
    group = ctx.obj["GROUP"]
    try:
        root = env.group_dir(group) if group else env.root
        for monday in _week_starts(ctx.obj["DATE"].monday(), count):
            label = monday.week_label()
            if not Bundle.paths_for(root, monday).todolist.exists():
                console.print(f"{label}: no plan")
                continue
            try:
                plan = open_weekly_plan(env, monday, group)
            except (ChecksumError, CorruptRecord) as e:
                log_msg(str(e))
                console.print(f"{label}: [red]unreadable[/red] ({escape(type(e).__name__)})")
                continue
            done = len(plan.completed_tasks())
            console.print(f"{label}: {done}/{plan.size()} done")
    except PathError as e:
        fail(escape(str(e)))
    except OSError as e:
        log_msg(f"storage failure: {e}")
        fail("database read/write unrecoverable error.")


if __name__ == "__main__":
    cli()
