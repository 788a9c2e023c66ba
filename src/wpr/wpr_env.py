from pathlib import Path
import os
import tomllib
from pydantic import BaseModel, ValidationError
from typing import List, Optional
from jinja2 import Template

from .model import Bundle, PathError
from .shared import DEFAULT_DIR_NAME, CalendarWeek, log_msg


# ─── Config Schema ─────────────────────────────────────────────────
class UIConfig(BaseModel):
    verbose: bool = False


class WeeklyConfig(BaseModel):
    auto_copy_on_monday: bool = False


class WprConfig(BaseModel):
    title: str = "WPR Configuration"
    ui: UIConfig = UIConfig()
    weekly: WeeklyConfig = WeeklyConfig()


# ─── Commented Template ────────────────────────────────────
CONFIG_TEMPLATE = """\
title = "{{ title }}"

[ui]
# verbose: bool = true | false
# print informational messages ("Task successfully created." etc.)
verbose = {{ ui.verbose | lower }}

[weekly]
# auto_copy_on_monday: bool = true | false
# On Mondays, when the new week is still empty, copy the unfinished
# tasks of the previous week into it.
auto_copy_on_monday = {{ weekly.auto_copy_on_monday | lower }}
"""


def render_config(config: WprConfig) -> str:
    template = Template(CONFIG_TEMPLATE)
    return template.render(**config.model_dump()).strip() + "\n"


def save_config_from_template(config: WprConfig, path: Path):
    path.write_text(render_config(config), encoding="utf-8")
    log_msg(f"Config with comments written to: {path}")


def check_directory(path: str | Path) -> Path:
    """Return the path if it is an existing, readable and writable directory."""
    p = Path(path).expanduser()
    if not p.exists():
        raise PathError(f"{p} does not exist")
    if not p.is_dir():
        raise PathError(f"{p} is not a directory")
    if not os.access(p, os.R_OK | os.W_OK | os.X_OK):
        raise PathError(f"{p} is not readable and writable")
    return p


def check_group_name(name: str) -> str:
    if not name or name in (".", "..") or "/" in name or (os.sep in name) or (
        os.altsep and os.altsep in name
    ):
        raise PathError(f"invalid group name {name!r}")
    return name


# ─── Main Environment Class ───────────────────────────────


class WprEnvironment:
    """
    Where weekly plans live.

    ``home`` is the default store (``$WPR_HOME`` or ``~/.wpr``) and holds the
    config file. ``root`` is where bundles are read and written; it is
    ``home`` unless replaced with ``set_root``.
    """

    def __init__(self, home: Optional[str | Path] = None):
        self._home = Path(home).expanduser() if home else self._resolve_home()
        self._root: Optional[Path] = None
        self._config: Optional[WprConfig] = None

    @property
    def home(self) -> Path:
        if not self._home.exists():
            self._home.mkdir(parents=True, exist_ok=True)
        return self._home

    @property
    def root(self) -> Path:
        if self._root is None:
            self._root = self.home
        return self._root

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    def ensure(self, init_config: bool = True):
        self.home.mkdir(parents=True, exist_ok=True)

        if init_config and not self.config_path.exists():
            save_config_from_template(WprConfig(), self.config_path)

    def load_config(self) -> WprConfig:
        # Step 1: Create the file if it doesn't exist
        if not self.config_path.exists():
            config = WprConfig()
            save_config_from_template(config, self.config_path)
            self._config = config
            return config

        # Step 2: Try to load and validate the config
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
            config = WprConfig.model_validate(data)
        except (ValidationError, tomllib.TOMLDecodeError) as e:
            log_msg(
                f"Config error in {self.config_path}: {e}\nUsing defaults.",
                print_output=True,
            )
            config = WprConfig()

        # Step 3: Always regenerate the canonical version
        rendered = render_config(config)
        current_text = self.config_path.read_text(encoding="utf-8")
        if rendered != current_text:
            self.config_path.write_text(rendered, encoding="utf-8")
            log_msg(f"Updated {self.config_path} with any missing defaults.")

        self._config = config
        return config

    @property
    def config(self) -> WprConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    # ─── storage root ─────────────────────────────────────

    def validate_root(self, path: str | Path) -> Path:
        return check_directory(path)

    def set_root(self, path: str | Path) -> bool:
        """
        Use another directory as storage root. The previous root is kept
        when the path is not a usable directory.
        """
        try:
            new_root = self.validate_root(path)
        except PathError as e:
            log_msg(f"rejected storage root {path}: {e}")
            return False
        self._root = new_root
        log_msg(f"storage root set to {new_root}")
        return True

    def group_dir(self, group: str) -> Path:
        return self.root / check_group_name(group)

    def bundle_for(self, monday: CalendarWeek, group: Optional[str] = None) -> Bundle:
        if group:
            directory = self.group_dir(group)
            if not directory.exists():
                directory.mkdir(parents=True)
                log_msg(f"New group {group} created at {directory}")
            check_directory(directory)
        else:
            self.root.mkdir(parents=True, exist_ok=True)
        return Bundle(self.root, monday, group)

    def list_groups(self) -> List[str]:
        groups = []
        for p in self.root.iterdir():
            if p.name.startswith("."):
                continue
            if p.is_dir() and os.access(p, os.R_OK | os.W_OK):
                groups.append(p.name)
        return sorted(groups)

    def _resolve_home(self) -> Path:
        env_home = os.getenv("WPR_HOME")
        if env_home:
            return Path(env_home).expanduser()
        return Path.home() / DEFAULT_DIR_NAME
