"""Unit tests for the diff Renderer."""

from __future__ import annotations

import pytest

from lagprobe.console.cell import Color
from lagprobe.console.frame_buffer import FrameBuffer
from lagprobe.console.renderer import Renderer, TerminalDevice

from conftest import RecordingTerminal


@pytest.fixture
def device() -> RecordingTerminal:
    return RecordingTerminal(20, 5)


@pytest.fixture
def renderer(frame_buffer: FrameBuffer, device: RecordingTerminal) -> Renderer:
    return Renderer(frame_buffer, device)


def _settle(renderer: Renderer, device: RecordingTerminal) -> None:
    renderer.render()
    device.reset()


class TestFullRedraw:
    def test_recording_terminal_is_a_device(self, device):
        assert isinstance(device, TerminalDevice)

    def test_first_render_clears_and_paints_everything(self, renderer, device, frame_buffer):
        changed = renderer.render()
        assert device.ops[0] == ("clear",)
        assert changed == 100
        # One run per row, one colour change for the whole frame.
        assert len(device.ops_of("move")) == 5
        assert device.ops_of("colors") == [("colors", Color.GRAY, Color.BLACK)]
        assert device.ops[-1] == ("flush",)
        assert not frame_buffer.needs_full_redraw
        assert frame_buffer.is_synced()

    def test_second_render_sends_nothing(self, renderer, device):
        _settle(renderer, device)
        assert renderer.render() == 0
        assert device.ops == []

    def test_invalidate_repaints(self, renderer, device, frame_buffer):
        _settle(renderer, device)
        frame_buffer.invalidate()
        assert renderer.render() == 100
        assert device.ops[0] == ("clear",)

    def test_resize_forces_full_redraw(self, renderer, device, frame_buffer):
        _settle(renderer, device)
        frame_buffer.resize(10, 2)
        assert renderer.render() == 20
        assert device.ops[0] == ("clear",)
        assert frame_buffer.is_synced()


class TestDiff:
    def test_single_cell_change(self, renderer, device, frame_buffer):
        _settle(renderer, device)
        frame_buffer.write_char(4, 2, "x")
        assert renderer.render() == 1
        assert device.ops == [
            ("move", 4, 2),
            ("colors", Color.GRAY, Color.BLACK),
            ("write", "x"),
            ("flush",),
        ]

    def test_adjacent_same_colour_cells_batch(self, renderer, device, frame_buffer):
        _settle(renderer, device)
        frame_buffer.write_at(3, 1, "hello", Color.GREEN)
        renderer.render()
        assert device.ops_of("move") == [("move", 3, 1)]
        assert device.writes() == ["hello"]
        assert renderer.last_runs == 1

    def test_colour_change_splits_run(self, renderer, device, frame_buffer):
        _settle(renderer, device)
        frame_buffer.write_at(0, 0, "ab", Color.GREEN)
        frame_buffer.write_at(2, 0, "cd", Color.RED)
        renderer.render()
        assert device.writes() == ["ab", "cd"]
        assert device.ops_of("colors") == [
            ("colors", Color.GREEN, Color.BLACK),
            ("colors", Color.RED, Color.BLACK),
        ]

    def test_unchanged_cell_splits_run(self, renderer, device, frame_buffer):
        _settle(renderer, device)
        frame_buffer.write_at(0, 0, "ab")
        frame_buffer.write_at(3, 0, "cd")
        renderer.render()
        assert device.ops_of("move") == [("move", 0, 0), ("move", 3, 0)]
        assert device.writes() == ["ab", "cd"]

    def test_colours_only_sent_when_different(self, renderer, device, frame_buffer):
        _settle(renderer, device)
        frame_buffer.write_at(0, 0, "ab", Color.CYAN)
        frame_buffer.write_at(0, 3, "cd", Color.CYAN)
        renderer.render()
        assert len(device.ops_of("move")) == 2
        assert len(device.ops_of("colors")) == 1

    def test_rewriting_same_content_is_free(self, renderer, device, frame_buffer):
        frame_buffer.write_at(0, 0, "same")
        _settle(renderer, device)
        frame_buffer.write_at(0, 0, "same")
        assert renderer.render() == 0
        assert device.ops == []


class TestStats:
    def test_summary_before_render(self, renderer):
        assert renderer.performance_summary() == "No renders yet"

    def test_summary(self, renderer, device, frame_buffer):
        renderer.render()
        renderer.render()
        assert renderer.frames_rendered == 2
        assert renderer.cells_changed == 100
        assert renderer.last_cells_changed == 0
        assert renderer.performance_summary() == (
            "Renders: 2, Avg cells/render: 50.0 (50.0%)"
        )
