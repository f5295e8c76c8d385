from __future__ import annotations

import pytest

from raw2tiff.utils.timing import PipelineTimings, Timer


def test_steps_keep_insertion_order_and_sum() -> None:
    t = PipelineTimings()
    t.add_step("decode_raw", 0.5)
    t.add_step("debayer", 0.25)
    t.add_step("debayer", 0.25)
    assert t.names() == ["decode_raw", "debayer", "debayer"]
    assert t.get_step("debayer") == pytest.approx(0.5)
    assert t.get_step("encode_tiff") is None
    assert t.total == pytest.approx(1.0)


def test_summary_lists_every_step_and_total() -> None:
    t = PipelineTimings()
    t.add_step("decode_raw", 0.003)
    t.add_step("encode_tiff", 0.001)
    lines = t.summary_lines()
    assert any(line.startswith("decode_raw") and "75.0%" in line for line in lines)
    assert lines[-1].startswith("Total")
    assert "4.000ms" in lines[-1]


def test_timer_records_even_when_block_raises() -> None:
    t = PipelineTimings()
    with pytest.raises(RuntimeError):
        with Timer("decode_raw", t):
            raise RuntimeError("bad input")
    assert t.names() == ["decode_raw"]
    assert t.steps[0].seconds >= 0.0


def test_timer_stop_without_start_fails() -> None:
    with pytest.raises(RuntimeError):
        Timer("x").stop()


def test_json_payload() -> None:
    t = PipelineTimings()
    t.add_step("decode_raw", 0.25)
    payload = t.to_json_dict()
    assert payload == {"steps": [{"name": "decode_raw", "seconds": 0.25}], "total_seconds": 0.25}
