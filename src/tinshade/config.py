# -*- coding: utf-8 -*-

"""
config.py

This module centralizes the configuration parameters for tinshade. Keeping the
rendering defaults, the grid-building pool size and the regression settings in
one place keeps the wireframe renderer, the grid builder, the hillshade
compositor and the point query consistent with each other.

Contents:
---------
1. VIEW_DEFAULTS:
   - Rendering options applied to a composite: which wireframe elements to draw,
     how to label vertices, the palette, and the hillshade lighting.
   - Ambient light is given as a percentage (0..100); azimuth is a compass
     bearing in degrees (0 = north, clockwise), elevation is degrees above the
     horizon.

2. GRID_BUILD:
   - Size of the worker pool used to fill the interpolation grid and the
     number of rows handed to each task.

3. GWR_SETTINGS:
   - Neighbourhood size, kernel bandwidth parameters and the significance level
     for the prediction interval reported by point queries.

Usage:
------
    from tinshade.config import ViewOptions, GRID_BUILD

    view = ViewOptions(hillshade=True, azimuth=315.0, elevation=45.0)

"""
import copy

# ───────────────────────────────────────────────────────────────────────────────
# 1) RENDERING OPTIONS
# ───────────────────────────────────────────────────────────────────────────────
VIEW_DEFAULTS = {
    # wireframe
    'edges': True,                  # draw TIN edges
    'vertices': False,              # draw vertex markers
    'labels': False,                # label vertex markers
    'label_field': 'ID',            # 'ID' (vertex index) or 'Z' (value, 3 decimals)
    'palette_for_wireframe': False, # colour edges and markers by value

    # raster
    'raster': True,                 # colour the raster by value
    'hillshade': False,             # shade the raster using surface derivatives
    'palette': 'viridis',           # registered palette name
    'value_range': None,            # optional (min, max) override for the palette
    'ambient': 20.0,                # ambient light (percent of full intensity)
    'azimuth': 315.0,               # light source bearing (degrees, clockwise from north)
    'elevation': 45.0,              # light source elevation above horizon (degrees)

    # colours (RGBA)
    'foreground': (0, 0, 0, 255),
    'background': (255, 255, 255, 255),
}

# ───────────────────────────────────────────────────────────────────────────────
# 2) GRID BUILD POOL
# ───────────────────────────────────────────────────────────────────────────────
GRID_BUILD = {
    'n_workers': 4,                 # fixed pool size
    'rows_per_task': 16,            # rows in each disjoint task partition
}

# ───────────────────────────────────────────────────────────────────────────────
# 3) LOCAL REGRESSION
# ───────────────────────────────────────────────────────────────────────────────
GWR_SETTINGS = {
    'n_neighbors': 16,              # samples considered around each query point
    'min_samples': 7,               # below this the fit is undefined (NaN)
    'grid_bandwidth': 1.0,          # fixed proportional bandwidth for grid sampling
    'query_bandwidth': 1.0,         # adaptive bandwidth for point queries
    'alpha': 0.05,                  # prediction interval significance (95%)
}


class ViewOptions:
    """Immutable-by-convention set of rendering options.

    Starts from `VIEW_DEFAULTS` and applies keyword overrides. A composite
    receives its view options at construction and never alters them.
    """

    def __init__(self, **overrides):
        unknown = sorted(set(overrides) - set(VIEW_DEFAULTS))
        if unknown:
            raise ValueError(f"Unknown view options: {', '.join(unknown)}")
        self._opts = copy.deepcopy(VIEW_DEFAULTS)
        self._opts.update(overrides)
        if not 0.0 <= float(self._opts['ambient']) <= 100.0:
            raise ValueError('ambient must be a percentage in [0, 100]')
        label_field = str(self._opts['label_field']).upper()
        if label_field not in ('ID', 'Z'):
            raise ValueError("label_field must be 'ID' or 'Z'")
        self._opts['label_field'] = label_field

    def __getattr__(self, name):
        opts = self.__dict__.get('_opts')
        if opts is not None and name in opts:
            return opts[name]
        raise AttributeError(name)

    def __repr__(self):
        return f"ViewOptions({self._opts!r})"

    def replace(self, **changes):
        """Return a new instance with ``changes`` applied."""
        merged = dict(self._opts)
        merged.update(changes)
        return ViewOptions(**merged)

    def as_dict(self):
        return dict(self._opts)

    @property
    def ambient_fraction(self):
        return float(self._opts['ambient']) / 100.0

    @property
    def is_index_labeling(self):
        return self._opts['label_field'] == 'ID'

    def range_for_palette(self):
        """Return the (min, max) override, ordered, or None when not configured."""
        rng = self._opts['value_range']
        if rng is None or len(rng) != 2:
            return None
        v0, v1 = float(rng[0]), float(rng[1])
        if v0 > v1:
            v0, v1 = v1, v0
        return v0, v1
