"""Tests for the screenshot sources."""

from __future__ import annotations

from pathlib import Path

import pytest

from snapsolve.capture.base import CaptureError, ScreenshotSource
from snapsolve.capture.files import FileScreenshotSource


class TestScreenshotSourceInterface:
    def test_cannot_instantiate_abstract_class(self) -> None:
        with pytest.raises(TypeError):
            ScreenshotSource()  # type: ignore[abstract]


class TestFileScreenshotSource:
    @pytest.fixture
    def files(self, tmp_path: Path, png_bytes: bytes, second_png_bytes: bytes) -> list[Path]:
        first = tmp_path / "problem.png"
        second = tmp_path / "failure.png"
        first.write_bytes(png_bytes)
        second.write_bytes(second_png_bytes)
        return [first, second]

    @pytest.mark.asyncio
    async def test_replays_files_in_order(self, files, png_bytes, second_png_bytes) -> None:
        async with FileScreenshotSource(files) as source:
            assert source.is_open
            assert source.remaining == 2
            first = await source.grab()
            second = await source.grab()
            assert source.remaining == 0
            with pytest.raises(CaptureError):
                await source.grab()
        assert (first.data, second.data) == (png_bytes, second_png_bytes)
        assert second.captured_at >= first.captured_at
        assert not source.is_open

    @pytest.mark.asyncio
    async def test_missing_file_fails_on_open(self, tmp_path: Path) -> None:
        source = FileScreenshotSource([tmp_path / "nope.png"])
        with pytest.raises(CaptureError, match="nope.png"):
            await source.open()

    @pytest.mark.asyncio
    async def test_grab_before_open(self, files) -> None:
        with pytest.raises(CaptureError):
            await FileScreenshotSource(files).grab()

    @pytest.mark.asyncio
    async def test_feeds_orchestrator(self, orchestrator, fake_env, files) -> None:
        await orchestrator.new_session(fake_env)
        async with FileScreenshotSource(files) as source:
            screenshot = await orchestrator.capture_from(source)
        assert screenshot.index == 0
        assert orchestrator.session.screenshots == [screenshot]

