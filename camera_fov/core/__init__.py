"""
Host-independent geometry for the camera FOV pipeline.

Modules:
- math_utils: points, Transform3, Plane, unit helpers
- curves: Line / Arc primitives and ray intersections
- camera: CameraProfile and camera-derived quantities
- extraction: obstacle extraction from geometry trees
- raycast / simplify / boundary / synthesizer: FOV boundary synthesis
"""

from .camera import CameraProfile
from .curves import Arc, Line
from .math_utils import Plane, Transform3

__all__ = [
    "CameraProfile",
    "Arc",
    "Line",
    "Plane",
    "Transform3",
]
