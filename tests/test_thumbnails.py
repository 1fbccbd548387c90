"""Tests for thumbnail sizing, generation and incremental reuse."""

import os
from pathlib import Path

import pytest
from PIL import Image as PILImage

from albumen.errors import ImageDecodeError
from albumen.models import Image
from albumen.thumbnails import ThumbnailEngine, decode, fit_within, thumbnail_destination


def image_for(path: Path, relative: str) -> Image:
    return Image(source_path=path, relative_path=Path(relative), mtime=path.stat().st_mtime)


class TestFitWithin:
    @pytest.mark.parametrize("width,height,size,expected", [
        (400, 300, 200, (200, 150)),
        (300, 600, 200, (100, 200)),
        (1000, 1000, 250, (250, 250)),
        (100, 50, 200, (100, 50)),
        (200, 100, 200, (200, 100)),
        (5000, 1, 100, (100, 1)),
    ])
    def test_longest_edge_capped(self, width, height, size, expected):
        assert fit_within(width, height, size) == expected

    def test_aspect_ratio_preserved(self):
        w, h = fit_within(4032, 3024, 800)
        assert max(w, h) == 800
        assert abs(w / h - 4032 / 3024) < 0.01


class TestDestination:
    def test_deterministic_layout(self):
        dest = thumbnail_destination(Path("/out"), Path("trip/a.jpg"), 200)
        assert dest == Path("/out/trip/thumbnails/200/a.jpg")

    def test_root_album_image(self):
        dest = thumbnail_destination(Path("/out"), Path("a.jpg"), 800)
        assert dest == Path("/out/thumbnails/800/a.jpg")


class TestThumbnailEngine:
    def test_generates_each_size(self, tmp_path, make_image):
        source = make_image(tmp_path / "in" / "a.jpg", size=(1000, 500))
        engine = ThumbnailEngine(tmp_path / "out", [200, 800])

        result = engine.process(image_for(source, "a.jpg"))

        assert result.ok
        assert result.written == 2
        assert result.dimensions == (1000, 500)
        with PILImage.open(result.thumbnails[200]) as small:
            assert small.size == (200, 100)
        with PILImage.open(result.thumbnails[800]) as large:
            assert large.size == (800, 400)

    def test_never_upscales(self, tmp_path, make_image):
        source = make_image(tmp_path / "in" / "tiny.png", size=(120, 80))
        engine = ThumbnailEngine(tmp_path / "out", [200])

        result = engine.process(image_for(source, "tiny.png"))

        with PILImage.open(result.thumbnails[200]) as thumb:
            assert thumb.size == (120, 80)
            assert thumb.format == "PNG"

    def test_rgba_png_keeps_format(self, tmp_path, make_image):
        source = make_image(tmp_path / "in" / "alpha.png", size=(300, 300), color=(0, 0, 0, 0), mode="RGBA")
        engine = ThumbnailEngine(tmp_path / "out", [100])

        result = engine.process(image_for(source, "alpha.png"))

        assert result.ok
        assert result.thumbnails[100].name == "alpha.png"
        with PILImage.open(result.thumbnails[100]) as thumb:
            assert thumb.mode == "RGBA"

    def test_skips_up_to_date_thumbnails(self, tmp_path, make_image):
        source = make_image(tmp_path / "in" / "a.jpg")
        engine = ThumbnailEngine(tmp_path / "out", [200])
        first = engine.process(image_for(source, "a.jpg"))
        thumb = first.thumbnails[200]
        before = thumb.stat().st_mtime_ns

        second = engine.process(image_for(source, "a.jpg"))

        assert second.written == 0
        assert second.skipped == 1
        assert second.ok
        assert thumb.stat().st_mtime_ns == before

    def test_regenerates_when_source_newer(self, tmp_path, make_image):
        source = make_image(tmp_path / "in" / "a.jpg")
        engine = ThumbnailEngine(tmp_path / "out", [200])
        thumb = engine.process(image_for(source, "a.jpg")).thumbnails[200]
        stamp = thumb.stat().st_mtime + 100
        os.utime(source, (stamp, stamp))

        result = engine.process(image_for(source, "a.jpg"))

        assert result.written == 1

    def test_only_missing_sizes_written(self, tmp_path, make_image):
        source = make_image(tmp_path / "in" / "a.jpg")
        ThumbnailEngine(tmp_path / "out", [200]).process(image_for(source, "a.jpg"))

        result = ThumbnailEngine(tmp_path / "out", [200, 800]).process(image_for(source, "a.jpg"))

        assert result.written == 1
        assert result.skipped == 1

    def test_force_regenerates(self, tmp_path, make_image):
        source = make_image(tmp_path / "in" / "a.jpg")
        ThumbnailEngine(tmp_path / "out", [200]).process(image_for(source, "a.jpg"))

        result = ThumbnailEngine(tmp_path / "out", [200], force=True).process(image_for(source, "a.jpg"))

        assert result.written == 1

    def test_corrupt_image_is_recoverable(self, tmp_path, make_corrupt):
        source = make_corrupt(tmp_path / "in" / "bad.jpg")
        engine = ThumbnailEngine(tmp_path / "out", [200])

        result = engine.process(image_for(source, "bad.jpg"))

        assert not result.ok
        assert isinstance(result.error, ImageDecodeError)
        assert result.thumbnails == {}
        assert not (tmp_path / "out" / "thumbnails" / "200" / "bad.jpg").exists()

    def test_truncated_image_is_recoverable(self, tmp_path):
        source = tmp_path / "cut.jpg"
        PILImage.effect_noise((500, 500), 64).convert("RGB").save(source)
        data = source.read_bytes()
        source.write_bytes(data[: len(data) // 2])

        with pytest.raises(ImageDecodeError):
            decode(source)

    def test_no_temporary_files_left(self, tmp_path, make_image):
        source = make_image(tmp_path / "in" / "a.jpg")
        engine = ThumbnailEngine(tmp_path / "out", [200])

        engine.process(image_for(source, "a.jpg"))

        names = [p.name for p in (tmp_path / "out").rglob("*") if p.is_file()]
        assert names == ["a.jpg"]
