"""Exception hierarchy for gallery builds."""

from pathlib import Path


class GalleryError(Exception):
    """Base class for every error raised by albumen."""

    def __init__(self, message: str, path: Path | None = None):
        super().__init__(message)
        self.path = path

    def __str__(self):
        message = super().__str__()
        if self.path is not None:
            return f"{self.path}: {message}"
        return message


class ConfigError(GalleryError):
    """The configuration file is missing or invalid."""


class ScanError(GalleryError):
    """The input tree could not be scanned."""


class UnreadableRootError(ScanError):
    """The input root itself cannot be opened."""


class ImageDecodeError(GalleryError):
    """A source image is corrupt or in an unsupported format."""


class TemplateError(GalleryError):
    """An album page failed to render."""


class OutputError(GalleryError):
    """Writing into the output tree failed."""
