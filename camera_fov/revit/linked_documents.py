"""
Linked model support for obstacle extraction.

Finds the RevitLinkInstance elements visible in the host view, optionally
narrows them to a caller-chosen subset by name, and turns each loaded link
into GeometrySources (link geometry plus the link's total transform and its
own style -> category resolver).
"""

from .geometry_adapter import collect_host_sources, collect_link_sources, element_id_value

# Optional Revit API bindings (allow pytest outside Revit)
try:
    from Autodesk.Revit.DB import FilteredElementCollector, RevitLinkInstance
except Exception:
    FilteredElementCollector = None
    RevitLinkInstance = None


def _log(level, msg):
    """Simple logging function compatible with IronPython."""
    print("[{0}] camera_fov.linked_docs: {1}".format(level, msg))


def link_name(link_inst):
    try:
        return str(link_inst.Name)
    except Exception:
        return "<link {0}>".format(element_id_value(getattr(link_inst, "Id", None)))


def collect_link_instances(doc, view):
    """RevitLinkInstance elements visible in view; [] outside Revit."""
    if FilteredElementCollector is None:
        return []
    try:
        return list(FilteredElementCollector(doc, view.Id).OfClass(RevitLinkInstance).ToElements())
    except Exception as e:
        _log("WARN", "Failed to collect RevitLinkInstance elements: {0}".format(e))
        return []


def select_links(links, names=None):
    """Filter link instances by name.

    names=None selects every link; an empty collection selects none. Names
    that match no link are reported and ignored.

    Example:
        >>> class L(object):
        ...     def __init__(self, name): self.Name = name
        >>> [l.Name for l in select_links([L("A.rvt"), L("B.rvt")], ["B.rvt", "C.rvt"])]
        ['B.rvt']
    """
    links = list(links or [])
    if names is None:
        return links
    wanted = set(str(n) for n in names)
    selected = [l for l in links if link_name(l) in wanted]
    missing = wanted.difference(link_name(l) for l in selected)
    if missing:
        _log("WARN", "Requested link(s) not found in view: {0}".format(sorted(missing)))
    return selected


def collect_linked_sources(doc, view, cfg, link_names=None):
    """GeometrySources for every selected, loaded link visible in view.

    Returns:
        (sources, link_summary) where link_summary lists
        {"name", "id", "sources"} per processed link

    Commentary:
        ✔ Each link keeps its own transform and category resolver
        ✔ A link that fails to read is logged and skipped; other links continue
        ✘ Does NOT descend into nested links (links inside links)
    """
    sources = []
    summary = []
    if not cfg.include_linked_models:
        _log("DEBUG", "Linked model collection disabled in config")
        return sources, summary

    links = select_links(collect_link_instances(doc, view), link_names)
    if not links:
        _log("DEBUG", "No RVT links selected in view")
        return sources, summary

    for link_inst in links:
        name = link_name(link_inst)
        try:
            link_sources = collect_link_sources(link_inst, cfg)
        except Exception as e:
            _log("ERROR", "Error collecting from link {0}: {1}".format(name, e))
            continue
        sources.extend(link_sources)
        summary.append(
            {"name": name, "id": element_id_value(getattr(link_inst, "Id", None)), "sources": len(link_sources)}
        )
        _log("INFO", "Collected {0} elements from link {1}".format(len(link_sources), name))

    return sources, summary


def collect_obstacle_sources(doc, view, cfg, link_names=None):
    """Host sources followed by link sources, ready for extract_obstacles.

    Returns:
        (sources, info) with info = {"host": n, "links": [link summaries]}
    """
    host = collect_host_sources(doc, view, cfg)
    linked, links = collect_linked_sources(doc, view, cfg, link_names=link_names)
    return host + linked, {"host": len(host), "links": links}
