# camera_fov/core/diagnostics.py

LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


def _exc_to_str(e):
    try:
        return str(e)
    except Exception:
        return "<unstringifiable exception>"


class Diagnostics(object):
    """
    Structured diagnostics recorder for extraction and synthesis runs.

    - Bounded event storage (overflow is counted, not stored)
    - Aggregated counts keyed by level|phase|callsite|exc_type
    - De-duplicated events for per-primitive spam
    - JSON-safe output

    Recording never raises; a diagnostics failure must not abort a render.
    """

    def __init__(self, max_events=200):
        self.max_events = int(max_events)
        self.events = []
        self.counts = {}
        self.dropped_events = 0
        # dedupe_key -> {"index": int|None, "suppressed": int}
        self._dedupe = {}

    def _count_key(self, level, phase, callsite, exc_type):
        return "{}|{}|{}|{}".format(level, phase, callsite, exc_type or "")

    def _payload(self, level, phase, callsite, message, exc=None,
                 camera_id=None, elem_id=None, source=None, extra=None):
        return {
            "level": level,
            "phase": phase,
            "callsite": callsite,
            "message": message,
            "exc_type": type(exc).__name__ if exc is not None else None,
            "exc_message": _exc_to_str(exc) if exc is not None else None,
            "camera_id": camera_id,
            "elem_id": elem_id,
            "source": source,
            "extra": dict(extra or {}),
        }

    def _record(self, payload):
        key = self._count_key(
            payload.get("level"),
            payload.get("phase"),
            payload.get("callsite"),
            payload.get("exc_type"),
        )
        self.counts[key] = self.counts.get(key, 0) + 1

        if len(self.events) >= self.max_events:
            self.dropped_events += 1
            return None

        self.events.append(payload)
        return len(self.events) - 1

    def debug(self, phase, callsite, message, **ctx):
        self._record(self._payload("DEBUG", phase, callsite, message, **ctx))

    def info(self, phase, callsite, message, **ctx):
        self._record(self._payload("INFO", phase, callsite, message, **ctx))

    def warn(self, phase, callsite, message, **ctx):
        self._record(self._payload("WARN", phase, callsite, message, **ctx))

    def error(self, phase, callsite, message, exc=None, **ctx):
        self._record(self._payload("ERROR", phase, callsite, message, exc=exc, **ctx))

    def warn_dedupe(self, dedupe_key, phase, callsite, message, **ctx):
        """Record at most one WARN event per dedupe_key.

        Later calls only bump ``extra["suppressed_count"]`` on the first event.
        Used for per-primitive skips, which can repeat thousands of times.
        """
        entry = self._dedupe.get(dedupe_key)
        if entry is None:
            payload = self._payload("WARN", phase, callsite, message, **ctx)
            payload["extra"].setdefault("suppressed_count", 0)
            idx = self._record(payload)
            self._dedupe[dedupe_key] = {"index": idx, "suppressed": 0}
            return

        entry["suppressed"] += 1
        idx = entry.get("index")
        if idx is not None and 0 <= idx < len(self.events):
            try:
                self.events[idx]["extra"]["suppressed_count"] = entry["suppressed"]
            except (KeyError, TypeError):
                pass

    def summary(self):
        """Event totals per level, including dropped ones."""
        out = dict((lvl, 0) for lvl in LEVELS)
        for key, n in self.counts.items():
            lvl = key.split("|", 1)[0]
            out[lvl] = out.get(lvl, 0) + n
        return out

    def has_errors(self):
        return self.summary().get("ERROR", 0) > 0

    def to_dict(self):
        return {
            "max_events": self.max_events,
            "num_events": len(self.events),
            "dropped_events": self.dropped_events,
            "counts": dict(self.counts),
            "summary": self.summary(),
            "events": list(self.events),
        }
