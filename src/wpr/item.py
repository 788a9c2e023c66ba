from __future__ import annotations

from dataclasses import dataclass, field

from .model import InvalidRecord
from .shared import CalendarWeek, ParseResult

DELIMITER = ":"
ACTIVE = "A"
COMPLETED = "C"


@dataclass(eq=True)
class TaskRecord:
    """
    A single todo task: the day it was created, its title and whether it is
    done. Only the completion flag ever changes, and only from active to
    completed.

    Stored as one line, ``DATE:STATUS:TITLE`` where STATUS is ``A`` (active)
    or ``C`` (completed), e.g.::

        2024-01-01:A:buy milk
        2024-01-02:C:call Bob: re invoice
    """

    title: str
    originated_on: CalendarWeek = field(default=None)
    completed: bool = False

    def __post_init__(self):
        if not self.title:
            raise InvalidRecord("task title cannot be empty")
        if "\n" in self.title or "\r" in self.title:
            raise InvalidRecord("task title cannot span lines")
        if self.originated_on is None:
            self.originated_on = CalendarWeek.today()

    @property
    def status(self) -> str:
        return COMPLETED if self.completed else ACTIVE

    def mark_completed(self) -> None:
        self.completed = True

    def encode(self) -> str:
        return DELIMITER.join((self.originated_on.format(), self.status, self.title))

    @classmethod
    def decode(cls, text: str) -> ParseResult:
        parts = text.split(DELIMITER, 2)
        if len(parts) < 3:
            return ParseResult.fail(f"expected DATE:STATUS:TITLE, got {text!r}")
        date_part, status, title = parts

        day = CalendarWeek.parse(date_part)
        if not day.ok:
            return ParseResult.fail(day.message)
        if status not in (ACTIVE, COMPLETED):
            return ParseResult.fail(f"unknown status {status!r}, expected A or C")
        try:
            record = cls(title=title, originated_on=day.value, completed=status == COMPLETED)
        except InvalidRecord as e:
            return ParseResult.fail(str(e))
        return ParseResult(value=record)

    def __str__(self) -> str:
        return self.encode()
