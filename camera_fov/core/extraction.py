"""
Obstacle extraction: geometry trees -> deduplicated, plane-projected 2D curves.

Walks every GeometrySource with an explicit worklist of
``(node, accumulated_transform)`` pairs. Transforms compose outer to inner,
starting from the source's host transform, so nested instance depth is not
limited by the interpreter's recursion limit.

Per primitive:
    1. category check (linked content: style -> top-level category, fail-open)
    2. transform to host coordinates
    3. orthogonal projection onto the working plane
    4. degenerate check (projected endpoints closer than the tolerance)
    5. order-independent endpoint key; first occurrence wins

Per-primitive failures are recorded and skipped; extraction never aborts
because one primitive is broken.
"""

from ..revit.collection_policy import CategoryFilter, PolicyStats
from .curves import Arc, Line, is_arc
from .errors import GeometryExtractionWarning
from .geometry_tree import NODE_CURVE, NODE_INSTANCE, NODE_SOLID, GeometrySource
from .math_utils import SHORT_CURVE_TOLERANCE_FT, Plane, Transform3, distance

PHASE = "extract"


class ObstacleCurve(object):
    """A projected obstacle curve tagged with its originating source.

    Identity is by reference: two samples struck "the same obstacle" only when
    they reference the same ObstacleCurve instance.
    """

    __slots__ = ("curve", "source_id", "category", "key")

    def __init__(self, curve, source_id=None, category=None, key=None):
        self.curve = curve
        self.source_id = source_id
        self.category = category
        self.key = key

    @property
    def is_arc(self):
        return is_arc(self.curve)

    def __repr__(self):
        return "ObstacleCurve({0!r}, source_id={1!r})".format(self.curve, self.source_id)


def _fmt_point(p, precision):
    parts = []
    for v in p:
        r = round(float(v), precision)
        if r == 0.0:
            r = 0.0  # fold -0.0
        parts.append("{0:.{1}f}".format(r, precision))
    return ",".join(parts)


def curve_key(curve, precision=4, include_mid=False):
    """Order-independent dedup key from a curve's rounded endpoints.

    Example:
        >>> curve_key(Line((0, 0, 0), (1, 2, 0)), precision=2)
        '0.00,0.00,0.00|1.00,2.00,0.00'
        >>> curve_key(Line((1, 2, 0), (0, 0, 0)), precision=2)
        '0.00,0.00,0.00|1.00,2.00,0.00'
    """
    ends = sorted([_fmt_point(curve.start, precision), _fmt_point(curve.end, precision)])
    key = "|".join(ends)
    if include_mid and is_arc(curve):
        key += "|m:" + _fmt_point(curve.evaluate_mid(), precision)
    return key


def project_curve(curve, plane, min_length):
    """Project a curve onto plane; None when the projection is degenerate.

    Lines project both endpoints. Arcs project start, end and the point at
    half sweep; an arc seen edge-on (collinear projection) becomes a Line.

    Raises:
        ValueError / AttributeError / TypeError for unprojectable input.
    """
    ps = plane.project_point(curve.start)
    pe = plane.project_point(curve.end)
    if distance(ps, pe) < min_length:
        return None
    if not is_arc(curve):
        return Line(ps, pe)
    pm = plane.project_point(curve.evaluate_mid())
    try:
        return Arc(ps, pe, pm)
    except ValueError:
        return Line(ps, pe)


class ObstacleExtractor(object):
    """Accumulates obstacles from one or more sources into a shared key set.

    Host elements and every linked model should go through one extractor so
    that an edge shared by two sources is emitted once.

    Args:
        projection_plane: Plane, or (origin, normal) tuple
        cfg: Config (whitelist, tolerances, precision, link heuristics)
        category_filter: CategoryFilter; built from cfg when omitted
        resolve_category: ``style_id -> category`` used to build the filter
        diag: optional Diagnostics
    """

    def __init__(self, projection_plane, cfg=None, category_filter=None,
                 resolve_category=None, diag=None):
        if cfg is None:
            from ..config import Config
            cfg = Config()
        self.cfg = cfg
        self.diag = diag
        self.plane = None
        self._plane_error = None
        try:
            if isinstance(projection_plane, Plane):
                self.plane = projection_plane
            else:
                origin, normal = projection_plane
                self.plane = Plane(origin, normal)
        except (TypeError, ValueError) as e:
            self._plane_error = "{0}: {1}".format(type(e).__name__, e)

        self.filter = category_filter or CategoryFilter(
            cfg.category_whitelist, resolve_category=resolve_category, stats=PolicyStats()
        )
        self.min_length = getattr(cfg, "degenerate_length_ft", 2.0 * SHORT_CURVE_TOLERANCE_FT)

        self.obstacles = []
        self.warnings = []
        self._keys = set()
        self.counts = {
            "sources": 0,
            "candidates": 0,
            "emitted": 0,
            "duplicates": 0,
            "degenerate": 0,
            "filtered": 0,
            "linked_centerlines": 0,
            "skipped": 0,
        }

    # ------------------------------------------------------------------

    def _warn(self, reason, source_id, detail=None):
        w = GeometryExtractionWarning(reason, source_id=source_id, detail=detail)
        self.warnings.append(w)
        self.counts["skipped"] += 1
        if self.diag is not None:
            self.diag.warn_dedupe(
                "extract|" + reason,
                phase=PHASE,
                callsite="ObstacleExtractor",
                message="Skipped primitive: {0}".format(reason),
                source=source_id,
                extra={"detail": detail} if detail else None,
            )

    def _emit(self, curve, transform, source):
        self.counts["candidates"] += 1
        if curve is None:
            self._warn("null_geometry", source.source_id)
            return
        if self.plane is None:
            self._warn("degenerate_plane", source.source_id, self._plane_error)
            return
        try:
            world = curve.transformed(transform)
            projected = project_curve(world, self.plane, self.min_length)
        except (ValueError, AttributeError, TypeError, ZeroDivisionError) as e:
            self._warn("unprojectable", source.source_id, "{0}: {1}".format(type(e).__name__, e))
            return

        if projected is None:
            self.counts["degenerate"] += 1
            return

        key = curve_key(projected, self.cfg.dedupe_precision, self.cfg.dedupe_arc_midpoint)
        if key in self._keys:
            self.counts["duplicates"] += 1
            return
        self._keys.add(key)
        self.obstacles.append(
            ObstacleCurve(projected, source_id=source.source_id, category=source.category, key=key)
        )
        self.counts["emitted"] += 1

    def _style_allowed(self, node, source):
        if not source.linked:
            return True
        keep, _, _ = self.filter.check_style(
            getattr(node, "style_id", None),
            getattr(source, "resolve_category", None),
            getattr(source, "category_ids", None),
        )
        if not keep:
            self.counts["filtered"] += 1
        return keep

    def _source_allowed(self, source):
        if source.linked or source.category is None:
            return True
        if isinstance(source.category, str):
            keep, _, _ = self.filter.check_bic_name(source.category)
        else:
            keep, _, _ = self.filter.check_element_category(source.category)
        return keep

    # ------------------------------------------------------------------

    def add_source(self, source):
        """Walk one GeometrySource; returns how many new obstacles it produced."""
        self.counts["sources"] += 1
        before = len(self.obstacles)

        if not self._source_allowed(source):
            self.counts["filtered"] += 1
            return 0

        root_transform = source.host_transform or Transform3.identity()
        stack = [(node, root_transform) for node in reversed(source.roots)]

        while stack:
            node, acc = stack.pop()
            kind = getattr(node, "kind", None)

            if node is None or kind is None:
                self.counts["candidates"] += 1
                self._warn("null_geometry", source.source_id)
                continue

            if kind == NODE_INSTANCE:
                # Instances always descend; their children carry their own styles.
                try:
                    inner = acc.multiply(node.transform)
                except (AttributeError, TypeError) as e:
                    self._warn("bad_transform", source.source_id, str(e))
                    continue
                for child in reversed(node.children):
                    stack.append((child, inner))

            elif kind == NODE_SOLID:
                if not self._style_allowed(node, source):
                    continue
                for edge in node.edges:
                    self._emit(edge, acc, source)

            elif kind == NODE_CURVE:
                if source.linked and self.cfg.skip_linked_standalone_curves:
                    self.counts["linked_centerlines"] += 1
                    continue
                if not self._style_allowed(node, source):
                    continue
                self._emit(node.curve, acc, source)

            else:
                self._warn("unknown_node", source.source_id, str(kind))

        return len(self.obstacles) - before

    def extend(self, sources):
        for source in sources:
            self.add_source(source)
        return self

    def summary(self):
        out = dict(self.counts)
        out["obstacles"] = len(self.obstacles)
        out["warnings"] = len(self.warnings)
        out["policy"] = self.filter.stats.to_dict()
        return out


def extract(root_nodes, category_whitelist, projection_plane, host_transform=None,
            resolve_category=None, linked=None, cfg=None, diag=None, source_id=None):
    """Extract obstacle curves from a single geometry tree.

    A non-None host_transform marks the tree as linked-model content unless
    ``linked`` says otherwise. ``category_whitelist=None`` uses the whitelist
    of ``cfg`` (DEFAULT_CATEGORY_WHITELIST when cfg is omitted).

    Returns:
        list[ObstacleCurve]
    """
    from ..config import Config

    if cfg is None:
        cfg = Config() if category_whitelist is None else Config(category_whitelist=category_whitelist)
    elif category_whitelist is not None:
        cfg = cfg.with_overrides(category_whitelist=list(category_whitelist))

    if linked is None:
        linked = host_transform is not None

    extractor = ObstacleExtractor(
        projection_plane, cfg=cfg, resolve_category=resolve_category, diag=diag
    )
    extractor.add_source(
        GeometrySource(root_nodes, host_transform=host_transform, linked=linked, source_id=source_id)
    )
    return extractor.obstacles


def extract_obstacles(sources, projection_plane, cfg=None, resolve_category=None,
                      category_filter=None, diag=None):
    """Extract from several sources (host elements + links) with one shared key set.

    Returns:
        ObstacleExtractor (``.obstacles``, ``.warnings``, ``.summary()``)
    """
    extractor = ObstacleExtractor(
        projection_plane,
        cfg=cfg,
        category_filter=category_filter,
        resolve_category=resolve_category,
        diag=diag,
    )
    extractor.extend(sources)
    if diag is not None:
        diag.info(
            phase=PHASE,
            callsite="extract_obstacles",
            message="Extracted obstacle curves",
            extra=extractor.summary(),
        )
    return extractor
