import os
import re

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "camera_fov"))

# Region creation and deletion must go through a RegionHost so that replacement
# stays atomic per key and undo sees every handle.
FORBIDDEN_PATTERNS = [
    r"\bFilledRegion\.Create\s*\(",
    r"\bdoc\.Delete\s*\(",
    r"\.NewDetailCurve\s*\(",
]

ALLOWED_FILE = os.path.join("revit", "regions.py")


def test_no_region_write_bypass():
    violations = []

    for root, _, files in os.walk(ROOT):
        for fn in files:
            if not fn.endswith(".py"):
                continue

            path = os.path.join(root, fn)
            rel = os.path.relpath(path, ROOT)
            if rel == ALLOWED_FILE:
                continue

            with open(path, "r", encoding="utf-8", errors="ignore") as f:
                src = f.read()

            for pat in FORBIDDEN_PATTERNS:
                for m in re.finditer(pat, src):
                    violations.append((rel, pat, m.start()))

    assert not violations, (
        "Region write bypass detected. "
        "Create and delete regions through camera_fov.revit.regions.\n"
        + "\n".join(str(v) for v in violations)
    )


def test_package_has_no_bare_except(monkeypatch):
    import importlib.util
    import sys

    tool = os.path.join(os.path.dirname(ROOT), "tools", "check_no_bare_except.py")
    spec = importlib.util.spec_from_file_location("check_no_bare_except", tool)
    mod = importlib.util.module_from_spec(spec)
    monkeypatch.setitem(sys.modules, spec.name, mod)
    spec.loader.exec_module(mod)

    assert mod.scan([ROOT], set()) == []
