"""Loading, validating and scaffolding `albumen.toml`."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import tomli

from albumen.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "albumen.toml"

DEFAULT_CONFIG = """\
# albumen gallery configuration

# Directory tree of source images; every sub-directory becomes an album.
input = "input"

# Where the static site is written.
output = "_build"

# Longest-edge sizes of the generated thumbnails, in pixels. The first size
# is the one shown on album pages.
thumbnail_sizes = [450, 1200]

# Theme directory: templates/index.html overrides the built-in page template
# and static/ is copied to the output root.
theme = "_theme"

# Title of the top-level album (defaults to the input directory name).
# title = "My Photos"

# Copy full-size images next to each album page.
copy_originals = true

# Downscale the full-size copies to this longest edge instead of copying.
# resize = 2400

# JPEG quality for generated images.
quality = 85

# Fail the whole build if any album page fails to render.
strict = false

# Number of worker threads (defaults to the number of CPUs).
# workers = 4
"""

KNOWN_KEYS = {
    "input", "output", "thumbnail_sizes", "theme", "title",
    "copy_originals", "resize", "quality", "strict", "workers",
}


@dataclass(frozen=True)
class Config:
    input: Path
    output: Path
    thumbnail_sizes: tuple[int, ...]
    theme: Path
    title: str | None = None
    copy_originals: bool = True
    resize: int | None = None
    quality: int = 85
    strict: bool = False
    workers: int | None = None
    force: bool = False

    @property
    def primary_size(self) -> int:
        return self.thumbnail_sizes[0]

    @property
    def worker_count(self) -> int:
        return self.workers or os.cpu_count() or 1


def _positive_int(data: dict, key: str, path: Path) -> int | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"`{key}` must be a positive integer, got {value!r}", path)
    return value


def _boolean(data: dict, key: str, default: bool, path: Path) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"`{key}` must be true or false, got {value!r}", path)
    return value


def _directory(data: dict, key: str, default: str, base: Path, path: Path) -> Path:
    value = data.get(key, default)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"`{key}` must be a non-empty path string", path)
    return (base / value).resolve()


def parse_config(data: dict, base_dir: Path, path: Path | None = None) -> Config:
    """Validate already-parsed TOML data into a Config.

    Relative paths are resolved against `base_dir`.
    """
    path = path or base_dir / CONFIG_FILENAME

    unknown = sorted(set(data) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"unknown key(s): {', '.join(unknown)}", path)

    sizes = data.get("thumbnail_sizes", [450])
    if isinstance(sizes, int) and not isinstance(sizes, bool):
        sizes = [sizes]
    if not isinstance(sizes, list) or not sizes:
        raise ConfigError("`thumbnail_sizes` must be a non-empty list of integers", path)
    for size in sizes:
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            raise ConfigError(f"invalid thumbnail size {size!r}", path)
    if len(set(sizes)) != len(sizes):
        raise ConfigError("`thumbnail_sizes` contains duplicates", path)

    title = data.get("title")
    if title is not None and not isinstance(title, str):
        raise ConfigError("`title` must be a string", path)

    quality = data.get("quality", 85)
    if isinstance(quality, bool) or not isinstance(quality, int) or not 1 <= quality <= 95:
        raise ConfigError(f"`quality` must be between 1 and 95, got {quality!r}", path)

    config = Config(
        input=_directory(data, "input", "input", base_dir, path),
        output=_directory(data, "output", "_build", base_dir, path),
        thumbnail_sizes=tuple(sizes),
        theme=_directory(data, "theme", "_theme", base_dir, path),
        title=title,
        copy_originals=_boolean(data, "copy_originals", True, path),
        resize=_positive_int(data, "resize", path),
        quality=quality,
        strict=_boolean(data, "strict", False, path),
        workers=_positive_int(data, "workers", path),
    )

    if config.output == config.input:
        raise ConfigError("`output` must differ from `input`", path)
    if config.input.is_relative_to(config.output):
        raise ConfigError("`input` must not live inside `output`", path)
    return config


def load_config(path: Path) -> Config:
    """Read and validate a TOML configuration file."""
    path = Path(path)
    try:
        with open(path, "rb") as f:
            data = tomli.load(f)
    except FileNotFoundError as err:
        raise ConfigError("configuration file not found (run `albumen new`)", path) from err
    except tomli.TOMLDecodeError as err:
        raise ConfigError(f"configuration file is not valid TOML: {err}", path) from err
    except OSError as err:
        raise ConfigError(f"cannot read configuration file: {err}", path) from err

    config = parse_config(data, path.resolve().parent, path)
    logger.debug("Loaded configuration from %s: %s", path, config)
    return config


def write_default_config(path: Path, overwrite: bool = False) -> Path:
    """Write the commented default configuration to `path`."""
    path = Path(path)
    if path.exists() and not overwrite:
        raise ConfigError("refusing to overwrite existing configuration (use --force)", path)
    try:
        path.write_text(DEFAULT_CONFIG, encoding="utf-8")
    except OSError as err:
        raise ConfigError(f"cannot write configuration file: {err}", path) from err
    logger.info("Wrote %s", path)
    return path
