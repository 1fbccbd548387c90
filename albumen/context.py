"""Project the album tree into template contexts.

Pure: no filesystem access. Each album's context only links to its children
by relative URL, so no context embeds another album's data.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union
from urllib.parse import quote

from albumen.models import Album, Image, depth
from albumen.thumbnails import thumbnail_destination

# The JSON-compatible values a template may receive.
ContextValue = Union[str, int, float, bool, None, list["ContextValue"], dict[str, "ContextValue"]]


@dataclass(frozen=True)
class ImageEntry:
    image: str
    thumbnail: str

    def to_value(self) -> dict[str, ContextValue]:
        return {"image": self.image, "thumbnail": self.thumbnail}


@dataclass(frozen=True)
class RenderContext:
    relative_path: Path
    title: str
    images: tuple[ImageEntry, ...] = ()
    albums: tuple[str, ...] = ()
    parent: str | None = None
    root: str = ""

    def to_value(self) -> dict[str, ContextValue]:
        """The mapping handed to the template engine."""
        return {
            "album": {
                "title": self.title,
                "images": [entry.to_value() for entry in self.images],
                "albums": list(self.albums),
            },
            "parent": self.parent,
            "root": self.root,
        }


def album_link(album: Album) -> str:
    return f"{quote(album.name)}/"


def root_prefix(relative_path: Path) -> str:
    return "../" * depth(relative_path)


class ContextBuilder:
    """Builds one RenderContext per album that survives filtering.

    An image is kept only if the thumbnail stage filled in its
    `thumbnail_path`. When originals are not copied, `largest_size` names the
    thumbnail linked as the full image.
    """

    def __init__(self, output_root: Path, largest_size: int | None = None, copy_originals: bool = True):
        self.output_root = Path(output_root)
        self.largest_size = largest_size
        self.copy_originals = copy_originals

    def image_entry(self, image: Image) -> ImageEntry:
        album_dir = self.output_root / image.relative_path.parent
        thumbnail = _relative_url(image.thumbnail_path, album_dir)
        if self.copy_originals or self.largest_size is None:
            link = quote(image.name)
        else:
            largest = thumbnail_destination(self.output_root, image.relative_path, self.largest_size)
            link = _relative_url(largest, album_dir)
        return ImageEntry(image=link, thumbnail=thumbnail)

    def build(self, root: Album) -> dict[Path, RenderContext]:
        """Return contexts keyed by album relative path, children before parents.

        Albums with no surviving image anywhere below them get no context and
        are not linked from their parent. The root always gets one.
        """
        contexts: dict[Path, RenderContext] = {}
        if not self._build(root, contexts):
            contexts[root.relative_path] = RenderContext(relative_path=root.relative_path, title=root.title)
        return contexts

    def _build(self, album: Album, contexts: dict[Path, RenderContext]) -> bool:
        links = [album_link(child) for child in album.children if self._build(child, contexts)]
        entries = [self.image_entry(image) for image in album.images if image.thumbnail_path]
        if not entries and not links:
            return False

        contexts[album.relative_path] = RenderContext(
            relative_path=album.relative_path,
            title=album.title,
            images=tuple(entries),
            albums=tuple(links),
            parent=None if album.is_root else "../",
            root=root_prefix(album.relative_path),
        )
        return True


def _relative_url(path: Path, album_dir: Path) -> str:
    """Percent-encoded relative URL of `path` as seen from `album_dir`."""
    return "/".join(quote(part) for part in path.relative_to(album_dir).parts)


def build_contexts(root: Album, output_root: Path, largest_size: int | None = None,
                   copy_originals: bool = True) -> dict[Path, RenderContext]:
    return ContextBuilder(output_root, largest_size, copy_originals).build(root)
