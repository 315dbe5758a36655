"""
canvas.py

Thin drawing surface over a Pillow RGBA image: lines, filled ellipses,
filled rectangles and text, in viewport pixel coordinates.
"""
from PIL import Image, ImageDraw, ImageFont


class Canvas:
    """Transparent RGBA drawing surface of ``width`` x ``height`` pixels."""

    def __init__(self, width, height, background=(0, 0, 0, 0)):
        self.width = int(width)
        self.height = int(height)
        self.image = Image.new('RGBA', (self.width, self.height), tuple(background))
        self._draw = ImageDraw.Draw(self.image)
        self._font = ImageFont.load_default()
        self.color = (0, 0, 0, 255)

    def set_color(self, color):
        c = tuple(int(v) for v in color)
        self.color = c if len(c) == 4 else c + (255,)

    def line(self, x0, y0, x1, y1, width=1):
        self._draw.line([(float(x0), float(y0)), (float(x1), float(y1))], fill=self.color, width=width)

    def fill_ellipse(self, x, y, w, h):
        """Fill the ellipse inscribed in the frame with top-left (x, y)."""
        self._draw.ellipse([float(x), float(y), float(x + w), float(y + h)], fill=self.color)

    def fill_rect(self, x, y, w, h):
        self._draw.rectangle([float(x), float(y), float(x + w - 1), float(y + h - 1)], fill=self.color)

    def draw_rect(self, x, y, w, h):
        self._draw.rectangle([float(x), float(y), float(x + w), float(y + h)], outline=self.color)

    def text(self, x, y, s):
        self._draw.text((float(x), float(y)), s, fill=self.color, font=self._font)

    def text_width(self, s):
        left, _, right, _ = self._draw.textbbox((0, 0), s, font=self._font)
        return right - left
