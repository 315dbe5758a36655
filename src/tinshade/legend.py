"""
legend.py

Vertical colour-bar legend for the active palette, with labelled major
ticks and short minor ticks on the right-hand side.
"""
import math
import logging

import numpy as np
from matplotlib.ticker import MaxNLocator

from tinshade.canvas import Canvas
from tinshade.palette import get_palette_by_name

logger = logging.getLogger(__name__)

PRIMARY_SPACING = 20     # minimum pixels between labelled ticks
SECONDARY_SPACING = 5    # minimum pixels between minor ticks
TIC_LENGTH = 10
TIC_LENGTH_SHORT = 5


def _ticks(v0, v1, spacing, height):
    n_bins = max(1, height // spacing)
    ticks = MaxNLocator(nbins=n_bins, steps=[1, 2, 2.5, 5, 10]).tick_values(v0, v1)
    eps = (v1 - v0) * 1.0e-9
    return np.array([t for t in ticks if v0 - eps <= t <= v1 + eps])


def _label_format(ticks):
    if len(ticks) < 2:
        return '{:g}'
    step = float(np.min(np.diff(ticks)))
    decimals = max(0, -int(math.floor(math.log10(step)))) if step > 0 else 0
    return '{:.%df}' % decimals


def render_legend(view, model, width, height, margin=5, frame=True):
    """Render a legend for ``model`` using the palette and range of ``view``.

    ``width`` and ``height`` size the colour bar itself; the image grows to
    fit the margin and the labels. Returns a Pillow image, or None when the
    value range is empty.
    """
    v0, v1 = model.min_z, model.max_z
    override = view.range_for_palette()
    if override is not None:
        v0, v1 = override
    if v0 == v1:
        logger.debug('legend skipped: degenerate value range %s', v0)
        return None

    major = _ticks(v0, v1, PRIMARY_SPACING, height)
    minor = _ticks(v0, v1, SECONDARY_SPACING, height)
    fmt = _label_format(major)
    labels = [fmt.format(t) for t in major]

    # measure labels on a scratch canvas
    probe = Canvas(1, 1)
    w_labels = [probe.text_width(s) for s in labels]
    w_label = max(w_labels) if w_labels else 0
    w_zero = probe.text_width('0')

    image_width = int(width + 2 * margin + w_label + TIC_LENGTH + w_zero / 2)
    image_height = int(height + 2 * margin)
    canvas = Canvas(image_width, image_height, background=view.background)

    x0 = margin
    x1 = margin + width
    x2 = int(margin + width + TIC_LENGTH + w_zero / 2 + 1)
    x3 = x2 + w_label
    y0 = margin
    y1 = margin + height

    palette = get_palette_by_name(view.palette)
    for i in range(height + 1):
        canvas.set_color(palette.color_for(i / float(height), 0.0, 1.0))
        canvas.fill_rect(x0, y1 - i, width, 1)
    canvas.set_color(view.foreground)
    canvas.draw_rect(x0, y0, width, height)

    def to_pixel(v):
        return y1 - (v - v0) / (v1 - v0) * height

    major_set = set(np.round(major, 12))
    for t in minor:
        if np.round(t, 12) in major_set:
            continue
        y = to_pixel(t)
        canvas.line(x1, y, x1 + TIC_LENGTH_SHORT, y)
    for t, s, w in zip(major, labels, w_labels):
        y = to_pixel(t)
        canvas.line(x1, y, x1 + TIC_LENGTH, y)
        canvas.text(x3 - w, y - 6, s)

    if frame:
        canvas.draw_rect(0, 0, image_width - 1, image_height - 1)
    return canvas.image
