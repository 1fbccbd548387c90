"""Aspect-preserving thumbnails with modification-time based reuse."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image as PILImage
from PIL import ImageOps

from albumen.errors import ImageDecodeError, OutputError
from albumen.models import Image
from albumen.output import is_up_to_date, write_atomic

logger = logging.getLogger(__name__)

THUMBNAILS_DIR_NAME = "thumbnails"

# Modes JPEG can store directly; anything else is flattened to RGB.
JPEG_MODES = {"RGB", "L", "CMYK"}


def thumbnail_destination(output_root: Path, relative_path: Path, size: int) -> Path:
    """Where the `size` thumbnail of the image at `relative_path` lives."""
    return output_root / relative_path.parent / THUMBNAILS_DIR_NAME / str(size) / relative_path.name


def fit_within(width: int, height: int, size: int) -> tuple[int, int]:
    """Scale so the longer edge equals `size`, never enlarging."""
    longest = max(width, height)
    if longest <= size:
        return width, height
    scale = size / longest
    return max(1, round(width * scale)), max(1, round(height * scale))


def save_format(path: Path) -> str:
    fmt = PILImage.registered_extensions().get(path.suffix.lower())
    if fmt is None:
        raise OutputError(f"no image writer for {path.suffix!r}", path)
    return fmt


def decode(source: Path) -> PILImage.Image:
    """Fully load an image and apply its EXIF orientation."""
    try:
        with PILImage.open(source) as img:
            img.load()
            return ImageOps.exif_transpose(img)
    except (OSError, SyntaxError, ValueError, PILImage.DecompressionBombError) as err:
        raise ImageDecodeError(f"cannot decode image: {err}", source) from err


def save_resized(img: PILImage.Image, size: int, destination: Path, quality: int = 85):
    """Write `img` scaled to fit `size` to `destination`, atomically."""
    fmt = save_format(destination)
    resized = img
    target = fit_within(img.width, img.height, size)
    if target != img.size:
        try:
            resized = img.resize(target, PILImage.LANCZOS)
        except ValueError as err:
            raise ImageDecodeError(f"cannot resize image: {err}", destination) from err

    options = {}
    if fmt == "JPEG":
        if resized.mode not in JPEG_MODES:
            resized = resized.convert("RGB")
        options = {"quality": quality, "optimize": True}
    elif fmt == "WEBP":
        options = {"quality": quality}

    write_atomic(destination, lambda tmp: resized.save(tmp, fmt, **options))


@dataclass
class ThumbnailResult:
    image: Image
    thumbnails: dict[int, Path] = field(default_factory=dict)
    dimensions: tuple[int, int] | None = None
    written: int = 0
    skipped: int = 0
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ThumbnailEngine:
    """Produces every configured thumbnail size for one source image.

    Units are independent: each (image, size) pair maps to its own
    destination, so workers may run in any order without locking.
    """

    def __init__(self, output_root: Path, sizes, quality: int = 85, force: bool = False):
        self.output_root = Path(output_root)
        self.sizes = tuple(sizes)
        self.quality = quality
        self.force = force

    def destinations(self, image: Image) -> dict[int, Path]:
        return {size: thumbnail_destination(self.output_root, image.relative_path, size) for size in self.sizes}

    def stale(self, image: Image) -> dict[int, Path]:
        """Sizes whose thumbnail is missing or older than the source."""
        return {
            size: path for size, path in self.destinations(image).items()
            if self.force or not is_up_to_date(path, image.mtime)
        }

    def process(self, image: Image) -> ThumbnailResult:
        """Generate the stale thumbnails of `image`.

        Failures are returned on the result rather than raised, so one bad
        file cannot take down the worker pool.
        """
        result = ThumbnailResult(image=image)
        destinations = self.destinations(image)
        stale = self.stale(image)
        result.skipped = len(destinations) - len(stale)

        if stale:
            try:
                img = decode(image.source_path)
                result.dimensions = img.size
                for size, path in stale.items():
                    save_resized(img, size, path, self.quality)
                    result.written += 1
                    logger.debug("Wrote %s", path)
            except (ImageDecodeError, OutputError) as err:
                result.error = err
                return result

        result.thumbnails = destinations
        return result
