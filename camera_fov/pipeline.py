"""
Orchestration for the camera FOV pipeline.

FOVSession owns the only mutable state of the pipeline: the table of regions
currently installed per camera/region type, and the handles of the last
rendered batch (for undo). Geometry work is delegated to
camera_fov.core.synthesizer; persistence goes through a RegionHost.

Replacement is atomic per key: the new boundary is synthesized first, then the
old region is deleted and the new one created inside one host transaction. A
failed synthesis leaves the previously installed region in place.
"""

from contextlib import contextmanager

from .config import Config
from .core.camera import DORI_LEVELS, dori_distance_m, dori_region_type_name
from .core.diagnostics import Diagnostics
from .core.errors import SynthesisError
from .core.math_utils import meters_to_feet
from .core.synthesizer import synthesize

PHASE = "render"
NO_CAMERA_KEY = "NoCam"


def region_key(camera_id=None, region_type_id=None):
    """Composite key: '<camera>' or '<camera>_<region type>'; 'NoCam' without a camera.

    Example:
        >>> region_key(123456, 789)
        '123456_789'
        >>> region_key(None)
        'NoCam'
    """
    key = NO_CAMERA_KEY if camera_id is None else str(camera_id)
    if region_type_id is not None:
        key = "{0}_{1}".format(key, region_type_id)
    return key


class RegionTable(object):
    """Explicit key -> region handle table."""

    def __init__(self):
        self._entries = {}

    def get(self, key):
        return self._entries.get(key)

    def set(self, key, handle):
        self._entries[key] = handle

    def pop(self, key):
        return self._entries.pop(key, None)

    def keys(self):
        return list(self._entries.keys())

    def keys_for_camera(self, camera_id):
        prefix = region_key(camera_id)
        return [k for k in self._entries if k == prefix or k.startswith(prefix + "_")]

    def handles(self):
        return list(self._entries.values())

    def remove_handle(self, handle):
        for k, v in list(self._entries.items()):
            if v == handle:
                del self._entries[k]

    def __contains__(self, key):
        return key in self._entries

    def __len__(self):
        return len(self._entries)

    def to_dict(self):
        return dict((k, str(v)) for k, v in self._entries.items())


class RegionHost(object):
    """Interface to the document layer that materializes boundary loops.

    Implementations:
      - InMemoryRegionHost (headless runs and tests)
      - camera_fov.revit.regions.RevitRegionHost (FilledRegion in a Revit view)
    """

    @contextmanager
    def transaction(self, name):
        yield self

    def create_region(self, loop, region_type_id=None):
        raise NotImplementedError

    def delete_region(self, handle):
        raise NotImplementedError


class InMemoryRegionHost(RegionHost):
    """Region host backed by a dict; transactions roll back on exception."""

    def __init__(self):
        self.regions = {}
        self.transactions = []
        self._next_id = 1
        self._depth = 0

    @contextmanager
    def transaction(self, name):
        snapshot = dict(self.regions)
        next_id = self._next_id
        self._depth += 1
        try:
            yield self
        except Exception:
            self.regions = snapshot
            self._next_id = next_id
            self.transactions.append((name, "rolled_back"))
            raise
        finally:
            self._depth -= 1
        self.transactions.append((name, "committed"))

    def create_region(self, loop, region_type_id=None):
        handle = self._next_id
        self._next_id += 1
        self.regions[handle] = (loop, region_type_id)
        return handle

    def delete_region(self, handle):
        if handle not in self.regions:
            return False
        del self.regions[handle]
        return True

    def loop(self, handle):
        entry = self.regions.get(handle)
        return entry[0] if entry else None


class DoriLayer(object):
    """One layer of a multi-range render: range in feet plus a region type."""

    __slots__ = ("range_ft", "region_type_id", "label")

    def __init__(self, range_ft, region_type_id=None, label=None):
        self.range_ft = float(range_ft)
        self.region_type_id = region_type_id
        self.label = label

    def __repr__(self):
        return "DoriLayer(range_ft={0:.3f}, type={1!r}, label={2!r})".format(
            self.range_ft, self.region_type_id, self.label
        )


def dori_layers(resolution_px, fov_deg, levels=None, region_type_ids=None):
    """DoriLayer per requested DORI level, farthest (detection) first.

    ``region_type_ids`` maps a region type name ('dori_25px', ...) to the host's
    region type id; the name itself is used when no mapping is given.
    """
    wanted = [name for name, _ in DORI_LEVELS]
    if levels is not None:
        requested = set(str(l).lower() for l in levels)
        unknown = requested.difference(wanted)
        if unknown:
            raise ValueError("unknown DORI level(s): {0}".format(sorted(unknown)))
        wanted = [name for name in wanted if name in requested]

    layers = []
    for name in wanted:
        type_name = dori_region_type_name(name)
        type_id = (region_type_ids or {}).get(type_name, type_name)
        distance_m = dori_distance_m(resolution_px, fov_deg, name)
        layers.append(DoriLayer(meters_to_feet(distance_m), type_id, label=name))
    return layers


class FOVSession(object):
    """Render and replace FOV regions for cameras against one obstacle snapshot.

    Args:
        host: RegionHost
        obstacles: ObstacleCurve sequence (treated as read-only)
        cfg: Config
        diag: Diagnostics (created when omitted)
        plane_z: elevation of the view plane; installed loops are moved onto
            it. None keeps them at the camera elevation.
    """

    def __init__(self, host, obstacles, cfg=None, diag=None, table=None, plane_z=None):
        self.host = host
        self.obstacles = list(obstacles)
        self.cfg = cfg or Config()
        self.diag = diag if diag is not None else Diagnostics(self.cfg.diagnostics_max_events)
        self.table = table if table is not None else RegionTable()
        self.plane_z = plane_z
        self.last_batch = []

    def _replace(self, key, loop, region_type_id):
        """Delete the old region for key and install loop, in one transaction."""
        with self.host.transaction("Draw FOV region"):
            old = self.table.get(key)
            if old is not None:
                self.host.delete_region(old)
            handle = self.host.create_region(loop, region_type_id)
        if old is not None:
            self.table.pop(key)
        self.table.set(key, handle)
        return handle

    def render(self, camera, region_type_id=None, record_batch=True):
        """Synthesize and install the FOV region for a camera.

        Returns:
            (handle, BoundaryLoop)

        Raises:
            SynthesisError: nothing was installed or removed
            Exception from the host: the host transaction rolled back
        """
        key = region_key(camera.camera_id, region_type_id)
        try:
            loop = synthesize(camera, self.obstacles, cfg=self.cfg, diag=self.diag)
        except SynthesisError as e:
            self.diag.error(
                phase=PHASE,
                callsite="FOVSession.render",
                message="FOV boundary could not be built; previous region kept",
                exc=e,
                camera_id=camera.camera_id,
                extra={"key": key},
            )
            raise

        if self.plane_z is not None:
            loop = loop.flattened(self.plane_z)

        try:
            handle = self._replace(key, loop, region_type_id)
        except Exception as e:
            self.diag.error(
                phase=PHASE,
                callsite="FOVSession.render",
                message="Host failed to install region",
                exc=e,
                camera_id=camera.camera_id,
                extra={"key": key},
            )
            raise

        if record_batch:
            self.last_batch = [handle]
        return handle, loop

    def render_layers(self, camera, layers):
        """Render one region per layer; the created handles become the undo batch.

        A layer whose synthesis fails is recorded and skipped; the other layers
        are still rendered.

        Returns:
            list of (layer, handle or None, BoundaryLoop or None)
        """
        results = []
        batch = []
        for layer in layers:
            layer_camera = camera.with_range(layer.range_ft)
            try:
                handle, loop = self.render(layer_camera, layer.region_type_id, record_batch=False)
            except SynthesisError:
                results.append((layer, None, None))
                continue
            batch.append(handle)
            results.append((layer, handle, loop))
        self.last_batch = batch
        return results

    def undo_last_batch(self):
        """Delete every region created by the last render call. Returns the count removed."""
        if not self.last_batch:
            return 0
        removed = 0
        with self.host.transaction("Undo FOV regions"):
            for handle in self.last_batch:
                if self.host.delete_region(handle):
                    removed += 1
        for handle in self.last_batch:
            self.table.remove_handle(handle)
        self.last_batch = []
        return removed

    def clear(self, camera_id=None):
        """Delete installed regions (all, or one camera's). Returns the count removed."""
        keys = self.table.keys() if camera_id is None else self.table.keys_for_camera(camera_id)
        if not keys:
            return 0
        removed = 0
        with self.host.transaction("Delete FOV regions"):
            for key in keys:
                if self.host.delete_region(self.table.get(key)):
                    removed += 1
        for key in keys:
            self.table.pop(key)
        remaining = set(self.table.handles())
        self.last_batch = [h for h in self.last_batch if h in remaining]
        return removed
