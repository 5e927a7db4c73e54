#!/usr/bin/env python3
"""
Fail CI on bare `except:` handlers in the camera_fov package.

- Parses each *.py file and reports every ExceptHandler without a type.
- Files that do not parse are reported too (a syntax error hides handlers).
- Optional allowlist file: lines of "relative/path.py:LINENO"

Usage:
    python tools/check_no_bare_except.py                 # scans camera_fov/
    python tools/check_no_bare_except.py --paths camera_fov tests
"""

from __future__ import annotations

import argparse
import ast
import os
import sys
from dataclasses import dataclass
from typing import Iterable, List, Set, Tuple

DEFAULT_PATHS = ["camera_fov"]


@dataclass(frozen=True)
class Hit:
    path: str
    lineno: int
    message: str


def _iter_py_files(target: str) -> Iterable[str]:
    if os.path.isfile(target):
        if target.endswith(".py"):
            yield target
        return
    for root, dirs, files in os.walk(target):
        dirs[:] = [d for d in dirs if d != "__pycache__"]
        for fn in files:
            if fn.endswith(".py"):
                yield os.path.join(root, fn)


def _load_allowlist(path: str | None) -> Set[Tuple[str, int]]:
    if not path or not os.path.exists(path):
        return set()
    allowed: Set[Tuple[str, int]] = set()
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            s = raw.strip()
            if not s or s.startswith("#"):
                continue
            p, _, n = s.rpartition(":")
            if not p or not n.isdigit():
                raise SystemExit(f"Invalid allowlist line (expected path:lineno): {s}")
            allowed.add((p.replace("\\", "/"), int(n)))
    return allowed


def _rel(path: str) -> str:
    return os.path.relpath(path, os.getcwd()).replace("\\", "/")


def bare_excepts(source: str) -> List[int]:
    """Line numbers of `except:` handlers in source.

    Example:
        >>> bare_excepts("try:\\n    pass\\nexcept:\\n    pass\\n")
        [3]
        >>> bare_excepts("try:\\n    pass\\nexcept Exception:\\n    pass\\n")
        []
    """
    tree = ast.parse(source)
    return sorted(
        node.lineno
        for node in ast.walk(tree)
        if isinstance(node, ast.ExceptHandler) and node.type is None
    )


def scan(paths: List[str], allowlist: Set[Tuple[str, int]]) -> List[Hit]:
    files: Set[str] = set()
    for p in paths:
        if not os.path.exists(p):
            raise SystemExit(f"Path not found: {p}")
        files.update(_iter_py_files(p))

    hits: List[Hit] = []
    for p in sorted(files):
        rel = _rel(p)
        with open(p, "r", encoding="utf-8", errors="replace") as f:
            source = f.read()
        try:
            lines = bare_excepts(source)
        except SyntaxError as e:
            hits.append(Hit(rel, e.lineno or 0, f"does not parse: {e.msg}"))
            continue
        for lineno in lines:
            if (rel, lineno) not in allowlist:
                hits.append(Hit(rel, lineno, "bare `except:`"))
    return hits


def main(argv: List[str]) -> int:
    ap = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    ap.add_argument("--paths", nargs="+", default=DEFAULT_PATHS, help="Files/dirs to scan")
    ap.add_argument("--allowlist", default=None, help="Optional path:lineno allowlist file")
    args = ap.parse_args(argv)

    hits = scan(args.paths, _load_allowlist(args.allowlist))
    if hits:
        print("ERROR: found handlers that must name an exception type:")
        for h in hits:
            print(f"  {h.path}:{h.lineno}: {h.message}")
        print("")
        print("Fix: catch `Exception` (or narrower) and record the failure on Diagnostics.")
        return 2

    print("OK: no bare `except:` in {0}".format(", ".join(args.paths)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
