# tinshade/__init__.py

__version__ = "0.1.0"

# Surface model and triangulation
from .tin import Vertex, Edge, NeighborEdgeVertex, Tin
from .model import SurfaceModel

# Viewport, selection and compositing
from .config import ViewOptions
from .geometry import Viewport, fit_transform_to_bounds
from .selector import InterpolationSource, InterpolationSourceSelector
from .composite import Composite
from .grid import GridBuildTask
from .query import QueryResult
