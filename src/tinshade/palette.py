"""
palette.py

Value-to-colour lookup backed by matplotlib colormaps.

Colours are 8-bit RGB(A) tuples/arrays so they can be handed straight to
Pillow. Values outside [vmin, vmax] are clamped to the ends of the ramp.
"""
import threading

import numpy as np
import matplotlib
import matplotlib.colors as mcolors

NO_DATA_RGBA = (255, 255, 255, 255)
TRANSPARENT_RGBA = (0, 0, 0, 0)

_PALETTE_CACHE = {}
_PALETTE_LOCK = threading.Lock()


class Palette:
    """A named colour ramp."""

    def __init__(self, name):
        try:
            self._cmap = matplotlib.colormaps[name]
        except KeyError as exc:
            raise ValueError(f'Unknown palette: {name}') from exc
        self.name = name
        # 256x4 uint8 lookup table
        self._lut = (self._cmap(np.linspace(0.0, 1.0, 256)) * 255.0 + 0.5).astype(np.uint8)

    def _lut_index(self, values, vmin, vmax):
        norm = mcolors.Normalize(vmin=vmin, vmax=vmax, clip=True)
        with np.errstate(invalid='ignore'):
            t = np.ma.filled(norm(np.asarray(values, dtype=float)), 0.0)
        t = np.nan_to_num(t, nan=0.0)
        return np.clip((t * 255.0 + 0.5).astype(int), 0, 255)

    def color_for(self, value, vmin, vmax):
        """Return an (r, g, b) tuple for ``value`` within [vmin, vmax]."""
        r, g, b, _ = self._lut[int(self._lut_index(value, vmin, vmax))]
        return int(r), int(g), int(b)

    def rgba_for(self, value, vmin, vmax):
        return self.color_for(value, vmin, vmax) + (255,)

    def rgba_array(self, values, vmin, vmax):
        """Vectorized lookup: returns uint8 array of shape values.shape + (4,)."""
        return self._lut[self._lut_index(values, vmin, vmax)]


def get_palette_by_name(name):
    """Return a cached `Palette` for ``name``."""
    with _PALETTE_LOCK:
        pal = _PALETTE_CACHE.get(name)
        if pal is None:
            pal = Palette(name)
            _PALETTE_CACHE[name] = pal
        return pal
