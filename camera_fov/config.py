"""
Configuration for the camera FOV pipeline.

Defines the Config class with every knob used by obstacle extraction, FOV
synthesis, the retry ladder and the DORI layer helpers, plus JSON helpers for
persisting it.
"""

import json
import os

from .core.math_utils import SHORT_CURVE_TOLERANCE_FT, mm_to_feet

DEFAULT_CATEGORY_WHITELIST = (
    "OST_Walls",
    "OST_StructuralColumns",
    "OST_Columns",
    "OST_Doors",
    "OST_Windows",
    "OST_CurtainWallPanels",
    "OST_CurtainWallMullions",
)

DEFAULT_RESOLUTION_LADDER_DEG = (0.5, 1.0, 2.0, 5.0)

_PLANE_Z_SOURCES = ("view", "camera")


class Config:
    """Configuration for the camera FOV pipeline.

    Attributes:
        angular_resolution_deg (float): Requested ray spacing (default: 0.5)
        resolution_ladder_deg (tuple): Coarser tiers tried after a failed
            attempt; only values greater than the requested resolution are
            used (default: 0.5, 1.0, 2.0, 5.0)
        jitter_enabled (bool): Retry each tier with the camera nudged along
            its orientation (default: True)
        jitter_offset_ft (float): Jitter distance in feet (default: 10 mm)
        short_curve_tolerance_ft (float): Host minimum curve length
            (default: 0.00256 ft)
        projection_tolerance_factor (float): Projected segments shorter than
            factor * short_curve_tolerance_ft are degenerate (default: 2.0)
        dedupe_precision (int): Decimals kept in dedup keys (default: 4)
        dedupe_arc_midpoint (bool): Include the arc midpoint in dedup keys so
            two different arcs sharing endpoints are both kept (default: False)
        category_whitelist (tuple): Top-level BuiltInCategory names treated as
            obstacles
        include_linked_models (bool): Walk Revit links (default: True)
        skip_linked_standalone_curves (bool): Drop free curves from linked
            geometry as centerlines (default: True)
        validate_simple_loop (bool): Reject self-intersecting merged loops
            (default: True)
        arc_tessellation_deg (float): Arc step used by the simplicity check
        max_arc_radius_ft (float): Three-point arcs above this radius are
            treated as degenerate
        plane_z_source (str): "view" uses the view's plane elevation for
            projection, "camera" uses the camera elevation
        default_fov_deg (float): Camera FOV when no parameter provides one
        horizontal_resolution_px (int): Default camera resolution for DORI
        resolutions_px (tuple): Resolution presets offered to callers
        param_user_rotation / param_fov_override / param_standard_fov /
            param_resolution (str): Camera family parameter names
        diagnostics_max_events (int): Bound on recorded diagnostics events

    Commentary:
        ✔ All lengths are decimal feet; convert meters at the edges
        ✔ jitter breaks exact tangencies between rays and obstacle endpoints
        ⚠ skip_linked_standalone_curves drops genuine boundaries in links whose
          walls have no solids; turn it off for such models
        ⚠ dedupe_precision below 3 merges distinct short edges

    Example:
        >>> cfg = Config()
        >>> cfg.angular_resolution_deg
        0.5
        >>> cfg.retry_tiers()
        [(0.5, False), (0.5, True), (1.0, False), (1.0, True), (2.0, False), (2.0, True), (5.0, False), (5.0, True)]
    """

    def __init__(
        self,
        angular_resolution_deg=0.5,
        resolution_ladder_deg=DEFAULT_RESOLUTION_LADDER_DEG,
        jitter_enabled=True,
        jitter_offset_ft=None,
        short_curve_tolerance_ft=SHORT_CURVE_TOLERANCE_FT,
        projection_tolerance_factor=2.0,
        dedupe_precision=4,
        dedupe_arc_midpoint=False,
        category_whitelist=DEFAULT_CATEGORY_WHITELIST,
        include_linked_models=True,
        skip_linked_standalone_curves=True,
        validate_simple_loop=True,
        arc_tessellation_deg=10.0,
        max_arc_radius_ft=1.0e6,
        plane_z_source="view",
        # Camera defaults
        default_fov_deg=93.0,
        horizontal_resolution_px=1920,
        resolutions_px=(1920, 1280, 800),
        # Camera family parameter names
        param_user_rotation="Pööra Kaamerat",
        param_fov_override="Kaamera nurk",
        param_standard_fov="Vaatenurk",
        param_resolution="Horisontaalne Resolutsioon",
        # Diagnostics
        diagnostics_max_events=200,
    ):
        self.angular_resolution_deg = float(angular_resolution_deg)
        self.resolution_ladder_deg = tuple(
            sorted(float(v) for v in (resolution_ladder_deg or ()))
        )
        self.jitter_enabled = bool(jitter_enabled)
        # 10 mm along the orientation vector
        self.jitter_offset_ft = (
            mm_to_feet(10.0) if jitter_offset_ft is None else float(jitter_offset_ft)
        )
        self.short_curve_tolerance_ft = float(short_curve_tolerance_ft)
        self.projection_tolerance_factor = float(projection_tolerance_factor)
        self.dedupe_precision = int(dedupe_precision)
        self.dedupe_arc_midpoint = bool(dedupe_arc_midpoint)
        self.category_whitelist = tuple(str(c) for c in (category_whitelist or ()))
        self.include_linked_models = bool(include_linked_models)
        self.skip_linked_standalone_curves = bool(skip_linked_standalone_curves)
        self.validate_simple_loop = bool(validate_simple_loop)
        self.arc_tessellation_deg = float(arc_tessellation_deg)
        self.max_arc_radius_ft = float(max_arc_radius_ft)
        self.plane_z_source = str(plane_z_source).lower()

        self.default_fov_deg = float(default_fov_deg)
        self.horizontal_resolution_px = int(horizontal_resolution_px)
        self.resolutions_px = tuple(int(v) for v in (resolutions_px or ()))

        self.param_user_rotation = str(param_user_rotation)
        self.param_fov_override = str(param_fov_override)
        self.param_standard_fov = str(param_standard_fov)
        self.param_resolution = str(param_resolution)

        self.diagnostics_max_events = int(diagnostics_max_events)

        # Validation
        if self.angular_resolution_deg <= 0 or self.angular_resolution_deg > 90:
            raise ValueError("angular_resolution_deg must be in (0, 90]")
        if any(v <= 0 for v in self.resolution_ladder_deg):
            raise ValueError("resolution_ladder_deg values must be positive")
        if self.jitter_offset_ft < 0:
            raise ValueError("jitter_offset_ft must be non-negative")
        if self.short_curve_tolerance_ft <= 0:
            raise ValueError("short_curve_tolerance_ft must be positive")
        if self.projection_tolerance_factor <= 0:
            raise ValueError("projection_tolerance_factor must be positive")
        if self.dedupe_precision < 0 or self.dedupe_precision > 12:
            raise ValueError("dedupe_precision must be in [0, 12]")
        if not self.category_whitelist:
            raise ValueError("category_whitelist must not be empty")
        if self.arc_tessellation_deg <= 0:
            raise ValueError("arc_tessellation_deg must be positive")
        if self.max_arc_radius_ft <= 0:
            raise ValueError("max_arc_radius_ft must be positive")
        if self.plane_z_source not in _PLANE_Z_SOURCES:
            raise ValueError("plane_z_source must be 'view' or 'camera'")
        if not (0 < self.default_fov_deg <= 360):
            raise ValueError("default_fov_deg must be in (0, 360]")
        if self.horizontal_resolution_px <= 0:
            raise ValueError("horizontal_resolution_px must be positive")
        if self.diagnostics_max_events < 0:
            raise ValueError("diagnostics_max_events must be >= 0")

    @property
    def degenerate_length_ft(self):
        """Projected length below which a segment is discarded."""
        return self.short_curve_tolerance_ft * self.projection_tolerance_factor

    def retry_tiers(self):
        """Ordered (resolution_deg, jittered) attempts for one synthesis call.

        The requested resolution comes first, then each ladder value strictly
        greater than it. Each resolution is tried plain, then jittered.
        """
        resolutions = [self.angular_resolution_deg]
        for r in self.resolution_ladder_deg:
            if r > self.angular_resolution_deg and r not in resolutions:
                resolutions.append(r)

        tiers = []
        for r in resolutions:
            tiers.append((r, False))
            if self.jitter_enabled and self.jitter_offset_ft > 0:
                tiers.append((r, True))
        return tiers

    def with_overrides(self, **overrides):
        """Return a copy with some fields replaced."""
        d = self.to_dict()
        d.update(overrides)
        return Config.from_dict(d)

    def __repr__(self):
        return (
            "Config(angular_resolution_deg={0}, ladder={1}, jitter={2}, "
            "whitelist={3} categories, linked={4})".format(
                self.angular_resolution_deg,
                list(self.resolution_ladder_deg),
                self.jitter_enabled,
                len(self.category_whitelist),
                self.include_linked_models,
            )
        )

    def to_dict(self):
        """Export configuration as dictionary for JSON serialization."""
        return {
            "angular_resolution_deg": self.angular_resolution_deg,
            "resolution_ladder_deg": list(self.resolution_ladder_deg),
            "jitter_enabled": self.jitter_enabled,
            "jitter_offset_ft": self.jitter_offset_ft,
            "short_curve_tolerance_ft": self.short_curve_tolerance_ft,
            "projection_tolerance_factor": self.projection_tolerance_factor,
            "dedupe_precision": self.dedupe_precision,
            "dedupe_arc_midpoint": self.dedupe_arc_midpoint,
            "category_whitelist": list(self.category_whitelist),
            "include_linked_models": self.include_linked_models,
            "skip_linked_standalone_curves": self.skip_linked_standalone_curves,
            "validate_simple_loop": self.validate_simple_loop,
            "arc_tessellation_deg": self.arc_tessellation_deg,
            "max_arc_radius_ft": self.max_arc_radius_ft,
            "plane_z_source": self.plane_z_source,
            "default_fov_deg": self.default_fov_deg,
            "horizontal_resolution_px": self.horizontal_resolution_px,
            "resolutions_px": list(self.resolutions_px),
            "param_user_rotation": self.param_user_rotation,
            "param_fov_override": self.param_fov_override,
            "param_standard_fov": self.param_standard_fov,
            "param_resolution": self.param_resolution,
            "diagnostics_max_events": self.diagnostics_max_events,
        }

    @classmethod
    def from_dict(cls, d):
        """Create Config from dictionary (e.g., from JSON). Unknown keys are ignored."""
        defaults = cls().to_dict()
        kwargs = {}
        for key, default in defaults.items():
            kwargs[key] = d.get(key, default)
        return cls(**kwargs)


def load_config(path, diag=None, create_missing=False):
    """Load a Config from a JSON file.

    - Missing file: defaults (written to ``path`` when create_missing=True).
    - Unreadable or invalid file: defaults, with a WARN on ``diag``.
    """
    if not path or not os.path.exists(path):
        cfg = Config()
        if create_missing and path:
            save_config(cfg, path, diag=diag)
        return cfg

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("settings root must be a JSON object")
        return Config.from_dict(data)
    except (OSError, ValueError, TypeError) as e:
        if diag is not None:
            diag.warn(
                phase="config",
                callsite="load_config",
                message="Failed to load settings; using defaults",
                source=path,
                extra={"error": "{0}: {1}".format(type(e).__name__, e)},
            )
        return Config()


def save_config(cfg, path, diag=None):
    """Write cfg as indented JSON. Returns True on success."""
    try:
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(cfg.to_dict(), f, indent=2, ensure_ascii=False)
        return True
    except OSError as e:
        if diag is not None:
            diag.error(
                phase="config",
                callsite="save_config",
                message="Failed to save settings",
                exc=e,
                source=path,
            )
        return False
