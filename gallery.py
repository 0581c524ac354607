"""
Seed Gallery
============

Forward/backward navigation through the infinite sequence of generated
images. The gallery keeps a running index starting at 0; stepping forward
or back re-renders from the new index alone, so any position can be
revisited and reproduces byte for byte.
"""

import os
import time
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from framework import ExpressionNode, Logger
from genart import ArtGenerator, DEFAULT_GENERATOR, check_dimensions


@dataclass(frozen=True)
class Frame:
    """
    One rendered image together with what produced it.

    Attributes:
        index (int): Seed the image was rendered from.
        label (str): Text shown next to the image (the decimal index).
        width (int): Image width in pixels.
        height (int): Image height in pixels.
        pixels (bytes): Row-major RGBA8 data, width * height * 4 bytes.
        expression (ExpressionNode): The synthesized expression.
    """
    index: int
    label: str
    width: int
    height: int
    pixels: bytes
    expression: ExpressionNode

    def to_image(self) -> Image.Image:
        return Image.frombytes('RGBA', (self.width, self.height), self.pixels)

    def save(self, path: str) -> str:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.to_image().save(path, format='PNG')
        return path


class Gallery:
    """
    Running-index navigator over seeds.

    Args:
        width (int): Width of every rendered frame.
        height (int): Height of every rendered frame.
        generator (ArtGenerator): Pipeline used to render each seed.
        start (int): Initial index.
        event_logger (Logger): Optional sink for 'render' events.
        output_dir (str): If set, every rendered frame is also saved there
            as <index>.png.
    """
    def __init__(self, width: int, height: int, generator: ArtGenerator = DEFAULT_GENERATOR,
                 start: int = 0, event_logger: Optional[Logger] = None,
                 output_dir: Optional[str] = None):
        check_dimensions(width, height)
        self.width = width
        self.height = height
        self.generator = generator
        self.index = start
        self.event_logger = event_logger
        self.output_dir = output_dir

    def render(self, index: int) -> Frame:
        started = time.perf_counter()
        expression, pixels = self.generator.draw(index, self.width, self.height)
        frame = Frame(index, str(index), self.width, self.height, pixels, expression)
        image_path = None
        if self.output_dir:
            image_path = frame.save(os.path.join(self.output_dir, f"{index}.png"))
        if self.event_logger is not None:
            self.event_logger.log_event('render', {
                'seed': index,
                'label': frame.label,
                'width': self.width,
                'height': self.height,
                'depth': expression.depth(),
                'node_count': expression.node_count(),
                'expression': expression.to_string(),
                'duration': time.perf_counter() - started,
                'image_path': image_path,
            })
        return frame

    def current(self) -> Frame:
        return self.render(self.index)

    def next(self) -> Frame:
        self.index += 1
        return self.current()

    def previous(self) -> Frame:
        self.index -= 1
        return self.current()

    def jump(self, index: int) -> Frame:
        if isinstance(index, bool) or not isinstance(index, int):
            raise ValueError(f"index must be an integer, got {index!r}")
        self.index = index
        return self.current()
