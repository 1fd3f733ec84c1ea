"""Tests for the trace helpers."""
from __future__ import annotations

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import debug_trace
from debug_trace import close_log, set_trace_enabled, trace, trace_call


@pytest.fixture()
def tracing(monkeypatch):
    monkeypatch.setattr(debug_trace, "DEBUG_TRACE", False)
    monkeypatch.setattr(debug_trace, "LOG_FILE", None)
    yield
    close_log()


class TestTrace:
    def test_disabled_by_default(self, tracing, capsys):
        trace("hidden")
        assert capsys.readouterr().err == ""

    def test_enabled_writes_stderr(self, tracing, capsys):
        set_trace_enabled(True)
        trace("loaded", "IO")
        assert "[IO] loaded" in capsys.readouterr().err

    def test_paint_is_gated_separately(self, tracing, capsys):
        set_trace_enabled(True)
        trace("frame", "PAINT")
        assert capsys.readouterr().err == ""

    def test_log_file(self, tracing, tmp_path):
        path = tmp_path / "trace.log"
        set_trace_enabled(True, log_file=str(path))
        trace("to file", "EXPORT")
        close_log()
        assert "[EXPORT] to file" in path.read_text(encoding="utf-8")


class TestTraceCall:
    def test_passes_result_through(self, tracing, capsys):
        @trace_call("IO")
        def double(x):
            return x * 2

        assert double(4) == 8
        assert capsys.readouterr().err == ""
        set_trace_enabled(True)
        assert double(5) == 10
        err = capsys.readouterr().err
        assert ">>> " in err and "<<< " in err

    def test_reraises(self, tracing, capsys):
        @trace_call("IO")
        def fail():
            raise ValueError("boom")

        set_trace_enabled(True)
        with pytest.raises(ValueError):
            fail()
        assert "raised ValueError: boom" in capsys.readouterr().err
