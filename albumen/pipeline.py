"""Build orchestration: scan, thumbnail, build contexts, render.

The two parallel stages share one bounded thread pool size. Each stage is a
barrier: contexts are only built once every thumbnail unit has finished, and
rendering only starts after the single context pass.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from albumen.config import Config
from albumen.context import ContextBuilder, RenderContext
from albumen.errors import OutputError
from albumen.models import Album, Image, index_albums
from albumen.render import Renderer
from albumen.report import BuildReport
from albumen.scanner import scan
from albumen.thumbnails import ThumbnailEngine, ThumbnailResult

logger = logging.getLogger(__name__)

PROGRESS_EVERY = 100


def _progress(done: int, total: int, what: str):
    if done % PROGRESS_EVERY == 0 or done == total:
        logger.info("  [%d/%d] %s", done, total, what)


class Pipeline:
    def __init__(self, config: Config, report: BuildReport | None = None):
        self.config = config
        self.report = report or BuildReport()
        self.engine = ThumbnailEngine(
            config.output, config.thumbnail_sizes, quality=config.quality, force=config.force,
        )
        self.renderer = Renderer(
            config.output,
            theme_dir=config.theme,
            copy_originals=config.copy_originals,
            resize=config.resize,
            quality=config.quality,
            force=config.force,
        )

    # -----------------------------------------------------------------------
    # Stages
    # -----------------------------------------------------------------------

    def scan(self) -> Album:
        logger.info("Step 1: Scanning %s...", self.config.input)
        return scan(
            self.config.input,
            self.report,
            exclude=(self.config.output, self.config.theme),
            root_title=self.config.title,
        )

    def make_thumbnails(self, images: list[Image]) -> list[ThumbnailResult]:
        logger.info("Step 2: Generating thumbnails for %d images...", len(images))
        results = []
        with ThreadPoolExecutor(max_workers=self.config.worker_count) as executor:
            futures = {executor.submit(self.engine.process, image): image for image in images}
            for done, future in enumerate(as_completed(futures), 1):
                image = futures[future]
                try:
                    result = future.result()
                except Exception as err:
                    logger.exception("Unexpected failure processing %s", image.source_path)
                    result = ThumbnailResult(image=image, error=err)
                self._apply(result)
                results.append(result)
                _progress(done, len(images), "images processed")
        return results

    def _apply(self, result: ThumbnailResult):
        image = result.image
        self.report.count("thumbnails_written", result.written)
        self.report.count("thumbnails_skipped", result.skipped)
        if not result.ok:
            self.report.record_error(result.error)
            self.report.count("images_failed")
            return
        image.thumbnail_path = result.thumbnails[self.config.primary_size]
        image.dimensions = result.dimensions
        self.report.count("images_processed" if result.written else "images_skipped")

    def build_contexts(self, root: Album) -> dict[Path, RenderContext]:
        logger.info("Step 3: Building album contexts...")
        builder = ContextBuilder(
            self.config.output,
            largest_size=max(self.config.thumbnail_sizes),
            copy_originals=self.config.copy_originals,
        )
        contexts = builder.build(root)
        pruned = sum(1 for album in root.walk() if album.relative_path not in contexts)
        self.report.count("albums_pruned", pruned)
        return contexts

    def render(self, root: Album, contexts: dict[Path, RenderContext]):
        logger.info("Step 4: Rendering %d album pages...", len(contexts))
        albums = index_albums(root)
        with ThreadPoolExecutor(max_workers=self.config.worker_count) as executor:
            futures = {
                executor.submit(self.renderer.render_album, albums[path], context, self.report, self.config.strict): path
                for path, context in contexts.items()
            }
            for done, future in enumerate(as_completed(futures), 1):
                try:
                    future.result()
                except Exception as err:
                    logger.exception("Unexpected failure rendering %s", futures[future])
                    self.report.record_error(err, fatal=self.config.strict)
                    self.report.count("albums_failed")
                _progress(done, len(futures), "pages rendered")

        try:
            self.renderer.write_assets()
        except (OSError, OutputError) as err:
            self.report.record_error(err)

    # -----------------------------------------------------------------------

    def run(self) -> BuildReport:
        """Run every stage; raises UnreadableRootError before any work starts."""
        root = self.scan()
        self.make_thumbnails(root.all_images())
        contexts = self.build_contexts(root)
        self.render(root, contexts)

        if self.config.strict and self.report["albums_failed"]:
            logger.error("Strict mode: %d album page(s) failed to render", self.report["albums_failed"])
        logger.info("Done! Site written to %s/", self.config.output)
        self.report.log_summary()
        return self.report


def build(config: Config, report: BuildReport | None = None) -> BuildReport:
    """Build the gallery described by `config`."""
    return Pipeline(config, report).run()
