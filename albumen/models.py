"""In-memory album tree produced by the scanner."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class Image:
    source_path: Path
    relative_path: Path
    mtime: float
    thumbnail_path: Path | None = None
    dimensions: tuple[int, int] | None = None

    @property
    def name(self) -> str:
        return self.source_path.name


@dataclass
class Album:
    """One input directory with its images and sub-albums.

    `parent` is the relative path of the parent album (None for the root). It
    is a lookup key into `index_albums()`, never an owning reference.
    """

    relative_path: Path
    title: str
    images: list[Image] = field(default_factory=list)
    children: list["Album"] = field(default_factory=list)
    parent: Path | None = None

    @property
    def name(self) -> str:
        return self.relative_path.name

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def walk(self):
        """Yield this album and all descendants, parents before children."""
        yield self
        for child in self.children:
            yield from child.walk()

    def all_images(self) -> list[Image]:
        return [image for album in self.walk() for image in album.images]

    def image_count(self) -> int:
        return sum(len(album.images) for album in self.walk())


def index_albums(root: Album) -> dict[Path, Album]:
    """Flat lookup table from relative path to album."""
    return {album.relative_path: album for album in root.walk()}


def depth(relative_path: Path) -> int:
    return len(relative_path.parts)
