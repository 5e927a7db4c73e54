"""
Live FOV check - draws regions for the selected cameras in the active view.

Paste into a Dynamo Python node with the camera elements wired to IN[0].
Shows what was extracted, the boundary strategy per camera, and any errors;
the regions it draws are removed again at the end.
"""

import sys
sys.path.append(r'C:\path\to\camera_fov_repo')

from camera_fov.config import Config
from camera_fov.entry_dynamo import get_current_document, get_current_view, run_fov, undo_last

doc = get_current_document()
view = get_current_view()
cameras = UnwrapElement(IN[0])  # noqa: F821

results = []
results.append("=" * 70)
results.append("CAMERA FOV LIVE CHECK")
results.append("=" * 70)
results.append("View: {0}".format(view.Name))
results.append("")

cfg = Config(angular_resolution_deg=1.0)
out = run_fov(doc, view, cameras, cfg, max_range_m=15.0)

obstacles = out.get("obstacles", {})
results.append("Obstacles: {0} (duplicates {1}, degenerate {2}, skipped {3})".format(
    obstacles.get("obstacles"),
    obstacles.get("duplicates"),
    obstacles.get("degenerate"),
    obstacles.get("skipped"),
))
for link in obstacles.get("sources", {}).get("links", []):
    results.append("  link {0}: {1} elements".format(link["name"], link["sources"]))
results.append("")

for cam in out.get("cameras", []):
    results.append("Camera {0}: fov {1:.1f} deg".format(cam["camera_id"], cam["reading"]["fov_deg"]))
    for region in cam["regions"]:
        boundary = region["boundary"]
        results.append("  region {0}: {1} curves, {2}, res {3}, jittered {4}".format(
            region["id"],
            len(boundary["curves"]),
            boundary["strategy"],
            boundary["resolution_deg"],
            boundary["jittered"],
        ))

results.append("")
if out.get("errors"):
    results.append("ERRORS:")
    for e in out["errors"]:
        results.append("  " + e)
else:
    results.append("OK")

results.append("Removed {0} region(s)".format(undo_last(doc, view)))

OUT = "\n".join(results)
