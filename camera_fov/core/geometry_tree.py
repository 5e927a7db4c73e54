"""
Host-independent geometry tree consumed by the obstacle extractor.

A host adapter (see camera_fov.revit.geometry_adapter) converts the model's
native geometry into these nodes once; the extractor then walks them with no
knowledge of the host API.

Node kinds:
- SolidNode: a solid leaf; contributes one candidate curve per edge
- CurveNode: a standalone curve leaf
- InstanceNode: nested sub-tree under a local transform

Every node may carry ``style_id``, the opaque graphics-style handle the
category resolver is called with.
"""

from .math_utils import Transform3

NODE_SOLID = "solid"
NODE_CURVE = "curve"
NODE_INSTANCE = "instance"


class SolidNode:
    __slots__ = ("edges", "style_id")
    kind = NODE_SOLID

    def __init__(self, edges, style_id=None):
        self.edges = list(edges or [])
        self.style_id = style_id

    def __repr__(self):
        return "SolidNode(edges={0}, style_id={1!r})".format(len(self.edges), self.style_id)


class CurveNode:
    __slots__ = ("curve", "style_id")
    kind = NODE_CURVE

    def __init__(self, curve, style_id=None):
        self.curve = curve
        self.style_id = style_id

    def __repr__(self):
        return "CurveNode({0!r}, style_id={1!r})".format(self.curve, self.style_id)


class InstanceNode:
    __slots__ = ("children", "transform", "style_id")
    kind = NODE_INSTANCE

    def __init__(self, children, transform=None, style_id=None):
        self.children = list(children or [])
        self.transform = transform if transform is not None else Transform3.identity()
        self.style_id = style_id

    def __repr__(self):
        return "InstanceNode(children={0}, style_id={1!r})".format(
            len(self.children), self.style_id
        )


class GeometrySource:
    """One geometry tree to extract from.

    Attributes:
        roots: top-level nodes
        host_transform: outer transform applied to every point (a linked
            model's total transform); identity for host elements
        linked: True for linked-model content (enables the style category
            filter and the standalone-curve heuristic)
        source_id: opaque identity of the originating element or link; stamped
            on every ObstacleCurve produced from this tree
        category: element category (BuiltInCategory name) for host elements;
            None when unknown or for links
        resolve_category: optional per-source ``style_id -> category`` lookup;
            each linked model has its own style table
        category_ids: optional ``{category_id: bic_name}`` of the source's
            document, so styles resolve without relying on category names
    """

    __slots__ = (
        "roots",
        "host_transform",
        "linked",
        "source_id",
        "category",
        "resolve_category",
        "category_ids",
    )

    def __init__(self, roots, host_transform=None, linked=False, source_id=None, category=None,
                 resolve_category=None, category_ids=None):
        self.roots = list(roots or [])
        self.host_transform = host_transform
        self.linked = bool(linked)
        self.source_id = source_id
        self.category = category
        self.resolve_category = resolve_category
        self.category_ids = category_ids

    def __repr__(self):
        return "GeometrySource(source_id={0!r}, roots={1}, linked={2})".format(
            self.source_id, len(self.roots), self.linked
        )
