"""Obstacle category policy (single source of truth).

Notes
-----
- Must be importable under pytest (outside Revit). Do not import Autodesk at module import time.
- Revit-only resolution happens inside functions.

Two checks live here:

HOST elements:
  - the element's own category must be in the whitelist (the collector filter).
LINKED geometry:
  - each primitive's graphics style is resolved to a category, the category's
    Parent chain is walked to the top-level category, and only whitelisted
    top-level categories are kept.
  - anything that cannot be resolved (invalid style id, style without a
    category, lookup failure) is KEPT. Styles frequently fail to resolve across
    model-to-model boundaries and dropping them loses real walls.
"""

from typing import Callable, Dict, Iterable, Optional, Set, Tuple

# Category name -> BuiltInCategory name, used when a category object exposes
# neither BuiltInCategory nor a resolvable id (pytest fakes, older hosts).
_FALLBACK_NAME_TO_BIC: Dict[str, str] = {
    "Walls": "OST_Walls",
    "Structural Columns": "OST_StructuralColumns",
    "Columns": "OST_Columns",
    "Doors": "OST_Doors",
    "Windows": "OST_Windows",
    "Curtain Panels": "OST_CurtainWallPanels",
    "Curtain Wall Mullions": "OST_CurtainWallMullions",
    "Floors": "OST_Floors",
    "Lines": "OST_Lines",
}

# BuiltInCategory ids are fixed across documents, Revit versions and UI
# languages; used when the category exposes no BuiltInCategory (pre-2023).
_BUILTIN_CATEGORY_IDS: Dict[int, str] = {
    -2000011: "OST_Walls",
    -2001330: "OST_StructuralColumns",
    -2000100: "OST_Columns",
    -2000023: "OST_Doors",
    -2000014: "OST_Windows",
    -2000170: "OST_CurtainWallPanels",
    -2000171: "OST_CurtainWallMullions",
    -2000032: "OST_Floors",
    -2000051: "OST_Lines",
    -2000080: "OST_Furniture",
}

_MAX_PARENT_DEPTH = 16

# Cache: (id(doc), bic_names_tuple) -> {category_id: bic_name}
_CATEGORY_ID_CACHE: Dict[Tuple[int, Tuple[str, ...]], Dict[int, str]] = {}


class PolicyStats(object):
    """Aggregated counters for policy filtering (runtime-safe)."""

    def __init__(self):
        self.seen_total = 0
        self.included_total = 0
        self.excluded_total = 0
        self.kept_unresolved = 0
        self.excluded_by_reason = {}
        self.excluded_by_category = {}

    def mark_excluded(self, reason, category_name):
        self.excluded_total += 1
        self.excluded_by_reason[reason] = self.excluded_by_reason.get(reason, 0) + 1
        self.excluded_by_category[category_name] = (
            self.excluded_by_category.get(category_name, 0) + 1
        )

    def mark_included(self, unresolved=False):
        self.included_total += 1
        if unresolved:
            self.kept_unresolved += 1

    def to_dict(self):
        return {
            "seen_total": self.seen_total,
            "included_total": self.included_total,
            "excluded_total": self.excluded_total,
            "kept_unresolved": self.kept_unresolved,
            "excluded_by_reason": dict(self.excluded_by_reason),
            "excluded_by_category": dict(self.excluded_by_category),
        }


def _try_import_bic():
    """Import BuiltInCategory lazily (Revit-only)."""
    from Autodesk.Revit.DB import BuiltInCategory  # type: ignore
    return BuiltInCategory


def resolve_category_ids(doc, bic_names: Iterable[str]) -> Dict[int, str]:
    """Map category integer ids to BuiltInCategory names for this doc (cached).

    Returns an empty dict outside Revit.
    """
    names = tuple(bic_names)
    key = (id(doc), names)
    cached = _CATEGORY_ID_CACHE.get(key)
    if cached is not None:
        return dict(cached)

    out: Dict[int, str] = {}
    try:
        BuiltInCategory = _try_import_bic()
    except ImportError:
        return out

    for n in names:
        bic = getattr(BuiltInCategory, n, None)
        if bic is None:
            continue
        try:
            cat = doc.Settings.Categories.get_Item(bic)
            cid = category_id(cat)
            if cid is not None:
                out[cid] = n
        except Exception:
            continue

    _CATEGORY_ID_CACHE[key] = dict(out)
    return out


def _parent_of(cat):
    parent = getattr(cat, "Parent", None)
    if parent is None:
        parent = getattr(cat, "parent", None)
    return parent


def top_level_category(cat):
    """Walk Parent links up to the root category (subcategories -> category)."""
    seen = 0
    current = cat
    while current is not None and seen < _MAX_PARENT_DEPTH:
        parent = _parent_of(current)
        if parent is None:
            return current
        current = parent
        seen += 1
    return current


def category_name(cat) -> str:
    if cat is None:
        return "<NO_CATEGORY>"
    try:
        return getattr(cat, "Name", None) or getattr(cat, "name", None) or "<UNKNOWN_CATEGORY>"
    except Exception:
        return "<UNKNOWN_CATEGORY>"


def category_id(cat) -> Optional[int]:
    """Integer id of a category (ElementId.IntegerValue, or .Value on Revit 2024+)."""
    eid = getattr(cat, "Id", None)
    if eid is None:
        return None
    if isinstance(eid, int):
        return eid
    for attr in ("IntegerValue", "Value"):
        v = getattr(eid, attr, None)
        if v is None:
            continue
        try:
            return int(v)
        except (TypeError, ValueError):
            return None
    return None


def category_bic_name(cat, id_map: Optional[Dict[int, str]] = None) -> Optional[str]:
    """Best-effort BuiltInCategory name for a category object.

    Order: Category.BuiltInCategory, then the doc id map, then the fixed
    BuiltInCategory ids, then the English category name table. None when
    nothing matches.
    """
    if cat is None:
        return None

    bic = getattr(cat, "BuiltInCategory", None)
    if bic is not None:
        s = str(bic)
        if s.startswith("OST_"):
            return s

    cid = category_id(cat)
    if cid is not None:
        if id_map and cid in id_map:
            return id_map[cid]
        if cid in _BUILTIN_CATEGORY_IDS:
            return _BUILTIN_CATEGORY_IDS[cid]

    return _FALLBACK_NAME_TO_BIC.get(category_name(cat))


class CategoryFilter(object):
    """Whitelist check for host elements and linked-geometry styles.

    Args:
        whitelist: BuiltInCategory names to keep
        resolve_category: callable ``style_id -> category or None``; the only
            link to the host's style table. May raise; failures keep the
            primitive.
        id_map: optional ``{category_id: bic_name}`` from resolve_category_ids
        stats: optional PolicyStats
    """

    def __init__(
        self,
        whitelist: Iterable[str],
        resolve_category: Optional[Callable] = None,
        id_map: Optional[Dict[int, str]] = None,
        stats: Optional[PolicyStats] = None,
    ):
        self.whitelist: Set[str] = set(whitelist)
        self.resolve_category = resolve_category
        self.id_map = dict(id_map or {})
        self.stats = stats if stats is not None else PolicyStats()

    def check_style(
        self,
        style_id,
        resolve_category: Optional[Callable] = None,
        id_map: Optional[Dict[int, str]] = None,
    ) -> Tuple[bool, str, str]:
        """Linked-geometry check. Returns (keep, reason, category_name).

        ``resolve_category`` overrides the filter's resolver for one call;
        ``id_map`` (the link document's category ids) extends the filter's.

        reason is one of:
          - "included"
          - "no_style"            (kept)
          - "unresolved_style"    (kept)
          - "resolver_error"      (kept)
          - "unknown_category"    (kept)
          - "not_in_allowlist"
        """
        self.stats.seen_total += 1

        resolver = resolve_category or self.resolve_category
        if style_id is None or resolver is None:
            self.stats.mark_included(unresolved=True)
            return True, "no_style", "<NO_STYLE>"

        try:
            cat = resolver(style_id)
        except Exception:
            self.stats.mark_included(unresolved=True)
            return True, "resolver_error", "<UNRESOLVED>"

        if cat is None:
            self.stats.mark_included(unresolved=True)
            return True, "unresolved_style", "<UNRESOLVED>"

        merged = self.id_map
        if id_map:
            merged = dict(self.id_map)
            merged.update(id_map)
        return self._check(top_level_category(cat), unknown_keeps=True, id_map=merged)

    def check_element_category(self, cat) -> Tuple[bool, str, str]:
        """Host-element check against the element's own category."""
        self.stats.seen_total += 1
        if cat is None:
            self.stats.mark_excluded("no_category", "<NO_CATEGORY>")
            return False, "no_category", "<NO_CATEGORY>"
        return self._check(top_level_category(cat), unknown_keeps=False)

    def check_bic_name(self, bic_name: Optional[str]) -> Tuple[bool, str, str]:
        """Host-element check when only the BuiltInCategory name is known."""
        self.stats.seen_total += 1
        if bic_name is None:
            self.stats.mark_excluded("no_category", "<NO_CATEGORY>")
            return False, "no_category", "<NO_CATEGORY>"
        if bic_name in self.whitelist:
            self.stats.mark_included()
            return True, "included", bic_name
        self.stats.mark_excluded("not_in_allowlist", bic_name)
        return False, "not_in_allowlist", bic_name

    def _has_identity(self, cat, cname, id_map):
        """True when the category is concrete enough to be judged by the whitelist."""
        if id_map and category_id(cat) is not None:
            return True
        return not cname.startswith("<")

    def _check(self, top, unknown_keeps, id_map=None):
        if id_map is None:
            id_map = self.id_map
        cname = category_name(top)
        bic = category_bic_name(top, id_map)
        if bic is None and self._has_identity(top, cname, id_map):
            bic = "<OTHER>"
        if bic is None:
            if unknown_keeps:
                self.stats.mark_included(unresolved=True)
                return True, "unknown_category", cname
            self.stats.mark_excluded("unknown_category", cname)
            return False, "unknown_category", cname

        if bic in self.whitelist:
            self.stats.mark_included()
            return True, "included", cname

        self.stats.mark_excluded("not_in_allowlist", cname)
        return False, "not_in_allowlist", cname
