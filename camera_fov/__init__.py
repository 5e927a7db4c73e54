"""
Camera FOV: 2D field-of-view regions for cameras in Revit plan views.

Extracts obstacle edges (walls, columns, doors, windows, curtain panels and
mullions, host and linked models) projected onto the view plane, casts rays
from each camera across its horizontal FOV and turns the hits into a closed
boundary of lines and arcs that a filled region can be created from.

Modules:
- config: Config (resolution ladder, jitter, tolerances, categories)
- core.extraction: geometry tree -> deduplicated 2D obstacle curves
- core.synthesizer: camera + obstacles -> BoundaryLoop (with retries)
- core.camera: CameraProfile, DORI distances, orientation helpers
- pipeline: FOVSession (region replacement, layers, undo)
- revit: Revit adapters (geometry, links, camera reading, filled regions)
- entry_dynamo: Dynamo / pyRevit entry point
"""

__version__ = "1.0.0"

from .config import Config

__all__ = ["Config"]
