# camera_fov/revit/safe_api.py

from typing import Any, Callable, Dict, Optional, TypeVar

T = TypeVar("T")

POLICIES = ("default", "warn", "raise")


def safe_call(
    diag: Any,
    *,
    phase: str,
    callsite: str,
    fn: Callable[[], T],
    default: T,
    context: Optional[Dict[str, Any]] = None,
    policy: str = "default",  # "default" | "warn" | "raise"
) -> T:
    """
    Run a Revit API read and turn a failure into a diagnostics event.

    policy:
      - "default": ERROR event, return default (the value matters to the FOV)
      - "warn":    WARN event, return default (optional value with a fallback)
      - "raise":   ERROR event, then re-raise

    Context keys camera_id / elem_id / source are lifted onto the event; the
    whole context is kept in ``extra`` together with the fallback value.

    Example:
        >>> safe_call(None, phase="camera", callsite="read", fn=lambda: 1 / 0, default=0.0)
        0.0
    """
    if policy not in POLICIES:
        raise ValueError("policy must be one of {0}".format(", ".join(POLICIES)))

    try:
        return fn()
    except Exception as e:
        if diag is not None:
            ctx = dict(context or {})
            if policy == "raise":
                message = "{0} failed".format(callsite)
            else:
                ctx["fallback"] = repr(default)
                message = "{0} failed; using {1!r}".format(callsite, default)
            record = diag.warn if policy == "warn" else diag.error
            try:
                record(
                    phase=phase,
                    callsite=callsite,
                    message=message,
                    exc=e,
                    camera_id=ctx.get("camera_id"),
                    elem_id=ctx.get("elem_id"),
                    source=ctx.get("source"),
                    extra=ctx,
                )
            except Exception:
                # Diagnostics must never stop a camera from being read
                pass

        if policy == "raise":
            raise

        return default
