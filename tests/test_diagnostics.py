# tests/test_diagnostics.py

import json

from camera_fov.core.diagnostics import Diagnostics


def test_error_records_event_and_counts():
    diag = Diagnostics(max_events=10)

    try:
        raise ValueError("boom")
    except ValueError as e:
        diag.error(
            phase="unit",
            callsite="test_error_records_event_and_counts",
            message="failed",
            exc=e,
            camera_id=123,
            elem_id=456,
            source="HOST",
            extra={"k": "v"},
        )

    d = diag.to_dict()
    assert d["num_events"] == 1
    assert d["dropped_events"] == 0
    ev = d["events"][0]
    assert ev["level"] == "ERROR"
    assert ev["camera_id"] == 123
    assert ev["exc_type"] == "ValueError"
    assert "boom" in ev["exc_message"]
    assert d["summary"]["ERROR"] == 1
    assert diag.has_errors()


def test_event_cap_drops_but_counts_continue():
    diag = Diagnostics(max_events=2)
    for i in range(7):
        diag.warn(phase="unit", callsite="cap", message="w{0}".format(i))

    d = diag.to_dict()
    assert d["num_events"] == 2
    assert d["dropped_events"] == 5
    assert sum(d["counts"].values()) == 7
    assert d["summary"]["WARN"] == 7


def test_warn_dedupe_records_once_and_counts_suppressed():
    diag = Diagnostics()
    for _ in range(4):
        diag.warn_dedupe("extract|null_geometry", phase="extract", callsite="x", message="skip")
    diag.warn_dedupe("extract|unprojectable", phase="extract", callsite="x", message="skip")

    d = diag.to_dict()
    assert d["num_events"] == 2
    assert d["events"][0]["extra"]["suppressed_count"] == 3
    assert d["events"][1]["extra"]["suppressed_count"] == 0


def test_to_dict_is_json_serializable():
    diag = Diagnostics()
    diag.info(phase="p", callsite="c", message="m", extra={"n": 1})
    json.dumps(diag.to_dict())
