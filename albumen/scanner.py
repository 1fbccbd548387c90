"""Walk the input directory into an Album tree.

Metadata-only: nothing is written and no image is decoded here. Entries are
sorted by their byte-encoded names so every run sees the same order.
"""

import logging
import os
from pathlib import Path

import tomli

from albumen.errors import UnreadableRootError
from albumen.models import Album, Image
from albumen.report import BuildReport

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tif", ".tiff"}

ALBUM_SETTINGS_FILENAME = "album.toml"

# Sub-directory names that would collide with generated output.
RESERVED_NAMES = {"thumbnails"}


def is_image_file(path: Path) -> bool:
    return path.suffix.lower() in IMAGE_EXTENSIONS


def _sort_key(entry: os.DirEntry) -> bytes:
    return os.fsencode(entry.name)


def _title_override(directory: Path, report: BuildReport) -> str | None:
    settings_path = directory / ALBUM_SETTINGS_FILENAME
    if not settings_path.is_file():
        return None
    try:
        with open(settings_path, "rb") as f:
            settings = tomli.load(f)
    except (OSError, tomli.TOMLDecodeError) as err:
        report.warn("AlbumSettings", f"ignoring unreadable album settings: {err}", settings_path)
        return None

    title = settings.get("title")
    if title is None:
        return None
    if not isinstance(title, str) or not title.strip():
        report.warn("AlbumSettings", "`title` must be a non-empty string", settings_path)
        return None
    return title.strip()


class Scanner:
    """Builds the album tree for one input root."""

    def __init__(self, root: Path, report: BuildReport, exclude=(), root_title: str | None = None):
        self.root = Path(root)
        self.report = report
        self.exclude = {os.path.realpath(p) for p in exclude}
        self.root_title = root_title
        self._visited: set[str] = set()
        self._real_root = ""

    def scan(self) -> Album:
        try:
            entries = self._list(self.root)
        except OSError as err:
            raise UnreadableRootError(f"cannot open input directory: {err.strerror or err}", self.root) from err

        self._real_root = os.path.realpath(self.root)
        self._visited = {self._real_root}
        title = (
            self.root_title
            or _title_override(self.root, self.report)
            or self.root.resolve().name
            or "Gallery"
        )
        album = self._build(Path("."), None, entries, title)
        logger.info(
            "  Found %d images in %d albums",
            album.image_count(), sum(1 for _ in album.walk()),
        )
        return album

    def _list(self, directory: Path) -> list[os.DirEntry]:
        with os.scandir(directory) as it:
            return sorted(it, key=_sort_key)

    def _build(self, relative: Path, parent: Path | None, entries, title: str) -> Album:
        album = Album(relative_path=relative, title=title, parent=parent)

        for entry in entries:
            if entry.name.startswith("."):
                continue
            path = Path(entry.path)
            try:
                is_dir = entry.is_dir()
                is_file = not is_dir and entry.is_file()
            except OSError as err:
                self.report.warn("Scan", f"cannot stat entry: {err}", path)
                continue

            if is_file and is_image_file(path):
                try:
                    mtime = entry.stat().st_mtime
                except OSError as err:
                    self.report.warn("Scan", f"cannot stat image: {err}", path)
                    continue
                album.images.append(Image(
                    source_path=path.absolute(),
                    relative_path=relative / entry.name,
                    mtime=mtime,
                ))
            elif is_dir:
                child = self._scan_child(path, relative / entry.name, relative)
                if child is not None:
                    album.children.append(child)

        return album

    def _scan_child(self, path: Path, relative: Path, parent: Path) -> Album | None:
        if path.name in RESERVED_NAMES:
            self.report.warn("Scan", "directory name is reserved for generated files, skipped", path)
            return None
        real = os.path.realpath(path)
        if real in self.exclude:
            logger.debug("Skipping excluded directory %s", path)
            return None
        if path.is_symlink() and os.path.commonpath([real, self._real_root]) == self._real_root:
            self.report.warn("Scan", "symbolic link points back into the input tree, not following", path)
            return None
        if real in self._visited:
            self.report.warn("Scan", "symbolic link revisits an already scanned directory, not following", path)
            return None
        self._visited.add(real)

        try:
            entries = self._list(path)
        except OSError as err:
            self.report.warn("Scan", f"unreadable directory skipped: {err.strerror or err}", path)
            return None

        title = _title_override(path, self.report) or path.name
        child = self._build(relative, parent, entries, title)
        if not child.images and not child.children:
            logger.debug("Pruning empty album %s", relative)
            return None
        return child


def scan(root: Path, report: BuildReport | None = None, exclude=(), root_title: str | None = None) -> Album:
    """Scan `root` into an Album tree.

    Raises UnreadableRootError when the root cannot be opened; problems below
    the root are recorded on `report` and the affected branch is left out.
    """
    return Scanner(root, report or BuildReport(), exclude=exclude, root_title=root_title).scan()
