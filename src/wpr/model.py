import zlib
from pathlib import Path
from typing import List, NamedTuple, Optional

from .shared import CalendarWeek, log_msg

ENCODING = "utf-8"

TODOLIST_EXT = ".todolist"
MEMO_EXT = ".memo"
CHECKSUM_EXT = ".checksum"


# ─── Errors ───────────────────────────────────────────────


class WprError(Exception):
    """Base class for weekly plan storage errors."""


class ChecksumError(WprError, RuntimeError):
    def __init__(self, path: Path, stored: str | None = None, actual: int | None = None):
        self.path = path
        self.stored = stored
        self.actual = actual
        super().__init__(f"Checksum verification failed for {path}")


class CorruptRecord(WprError, RuntimeError):
    def __init__(self, path: Path, line_number: int, line: str, reason: str = ""):
        self.path = path
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(
            f"Cannot parse todo record at {path}:{line_number}: {line!r}"
            + (f" ({reason})" if reason else "")
        )


class InvalidRecord(WprError, ValueError):
    pass


class PathError(WprError, ValueError):
    pass


class NotEditableError(WprError, RuntimeError):
    pass


# ─── Bundle ───────────────────────────────────────────────


class BundlePaths(NamedTuple):
    todolist: Path
    memo: Path
    checksum: Path


def _split_lines(text: str) -> List[str]:
    return [line.rstrip("\r") for line in text.split("\n")]


def _crc32_update(crc: int, path: Path) -> int:
    if path.is_file():
        crc = zlib.crc32(path.read_bytes(), crc)
    return crc


class Bundle:
    """
    The set of files holding one week's plan:

        <root>[/<group>]/<YYYY-MM-DD>.todolist   one encoded task per line
        <root>[/<group>]/<YYYY-MM-DD>.memo       free text, absent when empty
        <root>[/<group>]/<YYYY-MM-DD>.checksum   decimal CRC-32 of memo + todolist

    The date is always the Monday of the week. The todolist file is created
    when the bundle is opened; memo and checksum only when written.
    """

    def __init__(self, root: Path, monday: CalendarWeek, group: Optional[str] = None):
        self.root = Path(root)
        self.group = group
        self.monday = monday.monday()
        self.paths = self.paths_for(self.root, self.monday, group)
        if not self.paths.todolist.exists():
            self.paths.todolist.touch()
            log_msg(f"created {self.paths.todolist}")

    @staticmethod
    def paths_for(
        root: Path, monday: CalendarWeek, group: Optional[str] = None
    ) -> BundlePaths:
        directory = Path(root) / group if group else Path(root)
        base = monday.monday().format()
        return BundlePaths(
            todolist=directory / f"{base}{TODOLIST_EXT}",
            memo=directory / f"{base}{MEMO_EXT}",
            checksum=directory / f"{base}{CHECKSUM_EXT}",
        )

    @property
    def key(self) -> tuple:
        return (self.root, self.group, self.monday)

    @property
    def directory(self) -> Path:
        return self.paths.todolist.parent

    def __repr__(self) -> str:
        return f"Bundle(root={str(self.root)!r}, group={self.group!r}, monday={self.monday})"

    # ─── checksum ─────────────────────────────────────────

    def compute_checksum(self) -> int:
        # fixed order: memo first, then todolist
        crc = _crc32_update(0, self.paths.memo)
        crc = _crc32_update(crc, self.paths.todolist)
        return crc

    def _read_stored_checksum(self) -> Optional[str]:
        path = self.paths.checksum
        if not path.is_file():
            return None
        try:
            text = path.read_text(encoding=ENCODING)
        except (OSError, UnicodeDecodeError) as e:
            log_msg(f"checksum file {path} is unreadable, not verifying: {e}")
            return None
        lines = text.splitlines()
        return lines[0].strip() if lines else ""

    def verify_checksum(self) -> bool:
        """
        True when the stored checksum matches the files, or when there is no
        (readable) checksum file at all.
        """
        stored = self._read_stored_checksum()
        if stored is None:
            return True
        actual = self.compute_checksum()
        try:
            matches = int(stored) == actual
        except ValueError:
            matches = False
        if not matches:
            log_msg(f"checksum mismatch for {self!r}: stored {stored!r}, actual {actual}")
            return False
        return True

    def update_checksum(self) -> int:
        crc = self.compute_checksum()
        self.paths.checksum.write_text(str(crc), encoding=ENCODING, newline="\n")
        return crc

    # ─── memo / todolist I/O ──────────────────────────────

    def read_memo(self) -> str:
        """Memo text with blank lines dropped and every line newline-terminated."""
        if not self.paths.memo.is_file():
            return ""
        text = self.paths.memo.read_text(encoding=ENCODING)
        return "".join(f"{line}\n" for line in _split_lines(text) if line)

    def write_memo(self, text: str) -> None:
        if not text or not text.strip():
            self.paths.memo.unlink(missing_ok=True)
            return
        self.paths.memo.write_text(text, encoding=ENCODING, newline="\n")

    def read_task_lines(self) -> List[str]:
        if not self.paths.todolist.is_file():
            return []
        return _split_lines(self.paths.todolist.read_text(encoding=ENCODING))

    def write_task_lines(self, lines: List[str]) -> None:
        self.paths.todolist.write_text(
            "".join(f"{line}\n" for line in lines), encoding=ENCODING, newline="\n"
        )
