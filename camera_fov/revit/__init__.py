"""
Revit-specific integrations for the camera FOV pipeline.

Modules:
- collection_policy: obstacle category whitelist and linked-style filter
- geometry_adapter: GeometryElement -> geometry tree, host element collection
- linked_documents: RevitLinkInstance selection and link sources
- camera_reader: camera family instance -> CameraReading
- regions: FilledRegion host, DORI region types, boundary line style
- safe_api: guarded host calls recorded on Diagnostics
"""

from .collection_policy import CategoryFilter, PolicyStats
from .safe_api import safe_call

__all__ = [
    "CategoryFilter",
    "PolicyStats",
    "safe_call",
]
