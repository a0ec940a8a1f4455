"""Unified configuration loaded from .inkwell.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from inkwell.models import Blog

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".inkwell.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
    Path.home() / ".config" / "inkwell",
]


class BlogSectionConfig(BaseModel):
    """[blog] section."""

    id: str = "default"
    name: str = ""
    url: str = ""
    timezone: str = "UTC"
    directory: str = "./blog"


class ImporterSectionConfig(BaseModel):
    """[importer] section."""

    encoding: str = "utf-8"
    line_break: str = "<br />"
    date_format: str = "%m/%d/%Y %I:%M:%S %p"


class StoreSectionConfig(BaseModel):
    """[store] section."""

    backend: str = "json"


class DecoratorsSectionConfig(BaseModel):
    """[decorators] section."""

    chain: list[str] = Field(default_factory=lambda: ["hide-unapproved"])


class InkwellConfig(BaseModel):
    """Top-level configuration passed explicitly to the importer, store and permalinks."""

    blog: BlogSectionConfig = Field(default_factory=BlogSectionConfig)
    importer: ImporterSectionConfig = Field(default_factory=ImporterSectionConfig)
    store: StoreSectionConfig = Field(default_factory=StoreSectionConfig)
    decorators: DecoratorsSectionConfig = Field(default_factory=DecoratorsSectionConfig)

    @property
    def blog_directory(self) -> Path:
        return Path(self.blog.directory)

    def new_blog(self) -> Blog:
        """Build an empty Blog from the [blog] section."""
        from inkwell.models import Blog

        return Blog(
            id=self.blog.id,
            name=self.blog.name,
            url=self.blog.url,
            timezone=self.blog.timezone,
        )


def load_config(path: str | Path | None = None) -> InkwellConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .inkwell.toml in CWD
    3. ~/.config/inkwell/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged InkwellConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        global_config = Path.home() / ".config" / "inkwell" / "config.toml"
        if not data and global_config.exists():
            data = _load_toml(global_config)
            logger.info("Loaded config from %s", global_config)

    config = InkwellConfig.model_validate(data) if data else InkwellConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: InkwellConfig, **cli_kwargs: object) -> InkwellConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "blog_dir": ("blog", "directory"),
        "blog_url": ("blog", "url"),
        "blog_name": ("blog", "name"),
        "timezone": ("blog", "timezone"),
        "encoding": ("importer", "encoding"),
        "store": ("store", "backend"),
        "decorators": ("decorators", "chain"),
    }

    for key, value in cli_kwargs.items():
        if value is None:
            continue
        if key in mapping:
            section, field = mapping[key]
            data[section][field] = str(value) if isinstance(value, Path) else value

    return InkwellConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: InkwellConfig) -> InkwellConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "INKWELL_BLOG_DIR": ("blog", "directory"),
        "INKWELL_BLOG_URL": ("blog", "url"),
        "INKWELL_TIMEZONE": ("blog", "timezone"),
        "INKWELL_STORE": ("store", "backend"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    chain_raw = os.environ.get("INKWELL_DECORATORS")
    if chain_raw is not None:
        data["decorators"]["chain"] = [d.strip() for d in chain_raw.split(",") if d.strip()]

    return InkwellConfig.model_validate(data)
