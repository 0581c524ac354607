import os

import pytest
from PIL import Image

from gallery import Frame, Gallery
from genart import generate

SEED_ZERO_2X2 = bytes([
    255, 255, 255, 255, 0, 0, 0, 255,
    255, 255, 255, 255, 0, 0, 0, 255,
])


class TestNavigation:
    def test_starts_at_zero(self) -> None:
        frame = Gallery(2, 2).current()
        assert frame.index == 0
        assert frame.label == "0"
        assert frame.pixels == SEED_ZERO_2X2

    def test_next_and_previous(self) -> None:
        gallery = Gallery(3, 3)
        assert gallery.next().label == "1"
        assert gallery.next().label == "2"
        assert gallery.previous().label == "1"
        assert gallery.previous().label == "0"
        frame = gallery.previous()
        assert frame.index == -1
        assert frame.label == "-1"

    def test_revisiting_reproduces_frame(self) -> None:
        gallery = Gallery(5, 4)
        first = gallery.next()
        gallery.next()
        again = gallery.previous()
        assert again.pixels == first.pixels
        assert again.expression == first.expression

    def test_jump(self) -> None:
        gallery = Gallery(4, 4)
        frame = gallery.jump(17)
        assert gallery.index == 17
        assert frame.pixels == generate(17, 4, 4)
        with pytest.raises(ValueError):
            gallery.jump("17")

    def test_custom_start(self) -> None:
        assert Gallery(2, 2, start=-3).current().label == "-3"

    def test_invalid_dimensions(self) -> None:
        with pytest.raises(ValueError):
            Gallery(0, 4)


class TestFrameExport:
    def test_to_image(self) -> None:
        image = Gallery(2, 2).current().to_image()
        assert image.mode == 'RGBA'
        assert image.size == (2, 2)
        assert image.getpixel((0, 0)) == (255, 255, 255, 255)
        assert image.getpixel((1, 1)) == (0, 0, 0, 255)

    def test_save_png_round_trip(self, tmp_path) -> None:
        frame = Gallery(6, 3).jump(8)
        path = frame.save(str(tmp_path / "nested" / "8.png"))
        with Image.open(path) as image:
            assert image.format == 'PNG'
            assert image.convert('RGBA').tobytes() == frame.pixels

    def test_output_dir_saves_every_frame(self, tmp_path) -> None:
        gallery = Gallery(2, 2, output_dir=str(tmp_path))
        gallery.current()
        gallery.next()
        assert sorted(os.listdir(tmp_path)) == ['0.png', '1.png']


class TestEvents:
    def test_render_event(self, recording_logger) -> None:
        gallery = Gallery(2, 2, event_logger=recording_logger)
        gallery.current()
        assert len(recording_logger.events) == 1
        event_type, data = recording_logger.events[0]
        assert event_type == 'render'
        assert data['seed'] == 0
        assert data['label'] == '0'
        assert (data['width'], data['height']) == (2, 2)
        assert data['expression'] == '[x, x, x]'
        assert data['depth'] == 2
        assert data['node_count'] == 4
        assert data['duration'] >= 0
        assert data['image_path'] is None

    def test_event_records_image_path(self, recording_logger, tmp_path) -> None:
        gallery = Gallery(2, 2, event_logger=recording_logger, output_dir=str(tmp_path))
        gallery.jump(3)
        _, data = recording_logger.events[-1]
        assert data['image_path'] == os.path.join(str(tmp_path), '3.png')
