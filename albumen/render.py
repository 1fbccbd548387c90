"""Album page rendering and placement of full-size images."""

import logging
from pathlib import Path
from urllib.parse import unquote

import jinja2
from jinja2 import ChoiceLoader, DictLoader, Environment, FileSystemLoader, StrictUndefined

from albumen.context import RenderContext
from albumen.errors import ImageDecodeError, OutputError, TemplateError
from albumen.models import Album
from albumen.output import copy_file, copy_tree, is_up_to_date, write_bytes_if_changed
from albumen.report import BuildReport
from albumen.thumbnails import decode, save_resized

logger = logging.getLogger(__name__)

INDEX_TEMPLATE_NAME = "index.html"
STYLESHEET_NAME = "style.css"

# ---------------------------------------------------------------------------
# Built-in theme, used when the theme directory does not override it
# ---------------------------------------------------------------------------

DEFAULT_CSS = """\
*, *::before, *::after { box-sizing: border-box; }
body {
  margin: 0; padding: 24px;
  font-family: "Inter", "SF Pro Text", system-ui, -apple-system, sans-serif;
  font-size: 15px; line-height: 1.6;
  background: #0e0e0e; color: #c8c8c8;
  -webkit-font-smoothing: antialiased;
}
a { color: #7db8e0; text-decoration: none; transition: color 0.15s; }
a:hover { color: #aed4f0; }
h1 { font-size: 1.5em; font-weight: 500; letter-spacing: -0.01em; margin: 0 0 4px; }

.nav {
  margin-bottom: 20px; padding-bottom: 12px;
  border-bottom: 1px solid #1a1a1a;
  font-size: 0.88em; display: flex; gap: 16px; flex-wrap: wrap;
}
.nav a { color: #666; }
.nav a:hover { color: #aaa; }

.albums { margin: 12px 0 24px; display: flex; flex-wrap: wrap; gap: 6px; }
.albums a {
  display: inline-block; background: #161616; padding: 3px 12px;
  border-radius: 12px; color: #aaa;
  border: 1px solid #222; transition: background 0.15s, color 0.15s;
}
.albums a:hover { background: #1e1e1e; color: #ddd; border-color: #333; }

.grid {
  display: grid;
  grid-template-columns: repeat(auto-fill, minmax(160px, 1fr));
  gap: 3px;
}
.grid a {
  display: block; aspect-ratio: 1; overflow: hidden;
  border-radius: 2px;
}
.grid img {
  width: 100%; height: 100%; object-fit: cover; display: block;
  transition: transform 0.25s ease, filter 0.25s ease;
}
.grid a:hover img { transform: scale(1.05); filter: brightness(1.15); }

@media (max-width: 640px) {
  body { padding: 14px; }
  h1 { font-size: 1.3em; }
  .grid { grid-template-columns: repeat(auto-fill, minmax(110px, 1fr)); gap: 2px; }
}
"""

DEFAULT_INDEX_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ album.title }}</title>
<link rel="stylesheet" href="{{ root }}style.css">
</head>
<body>
{% if parent %}<div class="nav"><a href="{{ parent }}">&larr; up</a></div>{% endif %}
<h1>{{ album.title }}</h1>
{% if album.albums %}
<div class="albums">
{% for link in album.albums %}<a href="{{ link }}">{{ link|trim('/')|unquote }}</a>
{% endfor %}
</div>
{% endif %}
<div class="grid">
{% for entry in album.images %}<a href="{{ entry.image }}"><img src="{{ entry.thumbnail }}" alt="" loading="lazy"></a>
{% endfor %}
</div>
</body>
</html>
"""


def make_environment(theme_dir: Path | None = None) -> Environment:
    """Jinja2 environment preferring `<theme>/templates` over the built-in page."""
    loaders = []
    if theme_dir is not None:
        loaders.append(FileSystemLoader(str(Path(theme_dir) / "templates")))
    loaders.append(DictLoader({INDEX_TEMPLATE_NAME: DEFAULT_INDEX_TEMPLATE}))
    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=True,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    # Context links are percent-encoded; templates decode them for display.
    env.filters["unquote"] = unquote
    return env


class Renderer:
    """Writes album pages and places full-size images into the output tree."""

    def __init__(self, output_root: Path, theme_dir: Path | None = None, copy_originals: bool = True,
                 resize: int | None = None, quality: int = 85, force: bool = False):
        self.output_root = Path(output_root)
        self.theme_dir = Path(theme_dir) if theme_dir is not None else None
        self.copy_originals = copy_originals
        self.resize = resize
        self.quality = quality
        self.force = force
        self.env = make_environment(self.theme_dir)

    def album_dir(self, context: RenderContext) -> Path:
        return self.output_root / context.relative_path

    def render_page(self, context: RenderContext) -> str:
        try:
            template = self.env.get_template(INDEX_TEMPLATE_NAME)
            return template.render(**context.to_value())
        except jinja2.TemplateError as err:
            raise TemplateError(f"cannot render page: {err}", context.relative_path) from err

    def write_page(self, context: RenderContext) -> Path:
        html = self.render_page(context)
        destination = self.album_dir(context) / INDEX_TEMPLATE_NAME
        if write_bytes_if_changed(destination, html.encode("utf-8")):
            logger.debug("Wrote %s", destination)
        return destination

    def place_original(self, source: Path, destination: Path, mtime: float) -> bool:
        """Copy (or downscale) one full-size image; True if anything was written."""
        if self.resize is None:
            return copy_file(source, destination, force=self.force)
        if not self.force and is_up_to_date(destination, mtime):
            return False
        save_resized(decode(source), self.resize, destination, self.quality)
        return True

    def place_images(self, album: Album, report: BuildReport):
        if not self.copy_originals:
            return
        album_dir = self.output_root / album.relative_path
        for image in album.images:
            if not image.thumbnail_path:
                continue
            try:
                if self.place_original(image.source_path, album_dir / image.name, image.mtime):
                    report.count("originals_written")
            except (ImageDecodeError, OutputError) as err:
                report.record_error(err)

    def render_album(self, album: Album, context: RenderContext, report: BuildReport, strict: bool = False) -> bool:
        """Place the album's images and write its page.

        Render failures are recorded on `report`, as fatal when `strict`.
        """
        self.place_images(album, report)
        try:
            self.write_page(context)
        except (TemplateError, OutputError) as err:
            report.record_error(err, fatal=strict)
            report.count("albums_failed")
            return False
        report.count("albums_rendered")
        return True

    def write_assets(self) -> int:
        """Write the shared stylesheet and copy the theme's static files."""
        written = 0
        static_dir = self.theme_dir / "static" if self.theme_dir is not None else None
        if static_dir is not None and static_dir.is_dir():
            written += copy_tree(static_dir, self.output_root)
        stylesheet = self.output_root / STYLESHEET_NAME
        if static_dir is None or not (static_dir / STYLESHEET_NAME).is_file():
            if write_bytes_if_changed(stylesheet, DEFAULT_CSS.encode("utf-8")):
                written += 1
        return written
