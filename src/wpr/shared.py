import inspect
import os
import re
import shutil
import textwrap
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import IntEnum
from pathlib import Path
from typing import Any, Optional


_DATE_RE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")

DEFAULT_DIR_NAME = ".wpr"
LOG_DIR_NAME = ".logs"


@dataclass
class ParseResult:
    """
    Outcome of parsing stored or user supplied text.

    Parsing never raises for malformed input; callers look at ``ok`` and
    decide whether the failure is fatal (e.g. a corrupt task list) or just
    something to report back to the user.
    """

    value: Any = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.value is not None

    @classmethod
    def fail(cls, message: str) -> "ParseResult":
        return cls(value=None, message=message)


class WeekDay(IntEnum):
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


@dataclass(frozen=True, order=True)
class CalendarWeek:
    """
    A single calendar day used to address weeks.

    Only the calendar date takes part in identity and ordering. All shifting
    operations return new values.
    """

    day_date: date

    # ─── construction ─────────────────────────────────────

    @classmethod
    def today(cls) -> "CalendarWeek":
        return cls(date.today())

    @classmethod
    def from_date(cls, d: date) -> "CalendarWeek":
        if isinstance(d, datetime):
            d = d.date()
        return cls(date(d.year, d.month, d.day))

    @classmethod
    def parse(cls, text: str) -> ParseResult:
        """
        Parse strict 'YYYY-MM-DD'. The text must name a real calendar day
        and must read back identically once formatted.
        """
        s = text or ""
        m = _DATE_RE.fullmatch(s)
        if not m:
            return ParseResult.fail(f"expected YYYY-MM-DD, got {text!r}")
        year, month, day = (int(x) for x in m.groups())
        try:
            value = cls(date(year, month, day))
        except ValueError as e:
            return ParseResult.fail(f"{text!r} is not a calendar date: {e}")
        if value.format() != s:
            return ParseResult.fail(f"{text!r} does not round-trip")
        return ParseResult(value=value)

    # ─── attributes ───────────────────────────────────────

    @property
    def year(self) -> int:
        return self.day_date.year

    @property
    def month(self) -> int:
        return self.day_date.month

    @property
    def day(self) -> int:
        return self.day_date.day

    @property
    def weekday(self) -> WeekDay:
        return WeekDay(self.day_date.isoweekday())

    @property
    def week_number(self) -> int:
        return self.day_date.isocalendar()[1]

    # ─── arithmetic ───────────────────────────────────────

    def shift_days(self, days: int) -> "CalendarWeek":
        return CalendarWeek(self.day_date + timedelta(days=days))

    def shift_to_weekday(self, target: WeekDay) -> "CalendarWeek":
        """Move within the Monday-based week containing this day."""
        return self.shift_days(int(target) - int(self.weekday))

    def monday(self) -> "CalendarWeek":
        return self.shift_to_weekday(WeekDay.MONDAY)

    def sunday(self) -> "CalendarWeek":
        return self.shift_to_weekday(WeekDay.SUNDAY)

    def compare(self, other: "CalendarWeek") -> int:
        return (self.day_date - other.day_date).days

    # ─── text ─────────────────────────────────────────────

    def format(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def week_label(self) -> str:
        monday = self.monday()
        return f"Week {monday.week_number} - {monday}...{monday.sunday()}"

    def __str__(self) -> str:
        return self.format()


# ─── Logging ──────────────────────────────────────────────


def _get_runtime_home() -> Path:
    override = os.environ.get("WPR_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / DEFAULT_DIR_NAME


def _resolve_log_file_path(file_path: str | Path) -> Path:
    path = Path(file_path)
    if path.is_absolute():
        return path
    return _get_runtime_home() / path


def _default_log_relative_path(kind: str) -> Path:
    """Return .logs/log_<YYMMDD>.md style paths under the runtime home."""
    suffix = datetime.now().strftime("%y%m%d")
    return Path(LOG_DIR_NAME) / f"{kind}_{suffix}.md"


def log_msg(
    msg: str,
    file_path: Optional[str | Path] = None,
    print_output: bool = False,
):
    """
    Log a message and save it directly to a file.

    Args:
        msg (str): The message to log.
        file_path (str | Path | None, optional): Overrides the default path when
            provided. Defaults to ``None`` which writes to ``.logs/log_<YYMMDD>.md``.
        print_output (bool, optional): If True, also print to console.
    """
    frame = inspect.stack()[1].frame
    func_name = frame.f_code.co_name

    caller_name = func_name
    if "self" in frame.f_locals:
        cls_name = frame.f_locals["self"].__class__.__name__
        caller_name = f"{cls_name}.{func_name}"
    elif "cls" in frame.f_locals:
        cls_name = frame.f_locals["cls"].__name__
        caller_name = f"{cls_name}.{func_name}"

    lines = [
        f"- {datetime.now().strftime('%H:%M:%S')} log_msg ({caller_name}):  ",
    ]
    lines.extend(
        [
            f"\n{x}"
            for x in textwrap.wrap(
                msg.strip(),
                width=max(shutil.get_terminal_size()[0] - 6, 20),
                initial_indent="   ",
                subsequent_indent="   ",
            )
        ]
    )
    lines.append("\n\n")

    # Best-effort file logging; fall back to console when the file is unwritable.
    if file_path is None:
        file_path = _default_log_relative_path("log")
    log_path = _resolve_log_file_path(file_path)

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "a", encoding="utf-8") as f:
            f.writelines(lines)
    except OSError:
        print_output = True

    if print_output:
        print("".join(lines))
