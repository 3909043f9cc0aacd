"""
Tests for FrameSampler and RenderLoop.
"""

import asyncio

import numpy as np
import pytest

from conftest import FakeEngine, StubStream
from inference.session import ModelSession
from models.detection import Detection, Overlay
from pipeline.postprocess import PostProcessor
from pipeline.scheduler import FrameSampler, RenderLoop
from runtime.context import DetectionContext

RED = (0, 0, 255)


def _context(app_config, engine=None, with_session=True, stream=None):
    session = ModelSession(engine or FakeEngine()) if with_session else None
    ctx = DetectionContext.from_config(app_config, session)
    ctx.stream = stream
    return ctx


def _sampler(ctx):
    post = PostProcessor("boxes", "scores", fps_tracker=ctx.fps)
    return FrameSampler(ctx, post, interval_ms=ctx.config.sampler.interval_ms)


class TestFrameSamplerPreconditions:
    def test_no_session_is_noop(self, app_config):
        ctx = _context(app_config, with_session=False, stream=StubStream())
        sampler = FrameSampler(ctx, PostProcessor("boxes", "scores"))

        assert sampler.fire() is None
        assert sampler.stats.ticks == 0

    def test_no_stream_is_noop(self, app_config):
        sampler = _sampler(_context(app_config))

        assert sampler.fire() is None
        assert sampler.stats.ticks == 0

    def test_inactive_stream_is_noop(self, app_config):
        sampler = _sampler(_context(app_config, stream=StubStream(active=False)))

        assert sampler.fire() is None
        assert sampler.stats.skipped == 0


class TestFrameSamplerTick:
    def test_tick_draws_and_records_overlay(self, app_config):
        engine = FakeEngine()
        ctx = _context(app_config, engine=engine, stream=StubStream())
        sampler = _sampler(ctx)

        overlay = asyncio.run(sampler.tick())

        assert len(overlay) == 1
        assert ctx.last_overlay is overlay
        assert sampler.stats.completed == 1
        assert sampler.stats.last_inference_ms is not None
        fed = engine.calls[0]["images"]
        assert fed.shape == (1, 3, 640, 640)
        assert fed.dtype == np.float32
        assert tuple(ctx.surface.snapshot()[300, 300]) == (64, 64, 64)

    def test_overlapping_fire_is_skipped(self, app_config):
        ctx = _context(app_config, engine=FakeEngine(delay=0.2), stream=StubStream())
        sampler = _sampler(ctx)

        async def scenario():
            first = sampler.fire()
            second = sampler.fire()
            assert first is not None
            assert second is None
            assert sampler.busy
            await first
            return first

        first = asyncio.run(scenario())

        assert first.result() is not None
        assert sampler.stats.ticks == 1
        assert sampler.stats.skipped == 1
        assert sampler.stats.completed == 1

    def test_inference_failure_counted(self, app_config):
        engine = FakeEngine(error=RuntimeError("bad input shape"))
        ctx = _context(app_config, engine=engine, stream=StubStream())
        sampler = _sampler(ctx)

        assert asyncio.run(sampler.tick()) is None
        assert sampler.stats.failed == 1
        assert ctx.last_overlay is None
        assert ctx.surface.snapshot().max() == 0

    def test_malformed_result_counted(self, app_config):
        engine = FakeEngine(outputs={"boxes": np.zeros(0, dtype=np.float32), "scores": [1.0]})
        ctx = _context(app_config, engine=engine, stream=StubStream())
        sampler = _sampler(ctx)

        assert asyncio.run(sampler.tick()) is None
        assert sampler.stats.malformed == 1
        assert sampler.stats.completed == 0

    def test_result_discarded_when_stream_stops(self, app_config):
        stream = StubStream()
        ctx = _context(app_config, engine=FakeEngine(delay=0.1), stream=stream)
        sampler = _sampler(ctx)

        async def scenario():
            task = sampler.fire()
            await asyncio.sleep(0.02)
            stream.active = False
            return await task

        assert asyncio.run(scenario()) is None
        assert sampler.stats.completed == 0
        assert ctx.last_overlay is None
        assert ctx.surface.snapshot().max() == 0

    def test_cancel_in_flight(self, app_config):
        ctx = _context(app_config, engine=FakeEngine(delay=0.2), stream=StubStream())
        sampler = _sampler(ctx)

        async def scenario():
            task = sampler.fire()
            await asyncio.sleep(0)
            await sampler.cancel_in_flight()
            return task

        task = asyncio.run(scenario())

        assert task.cancelled()
        assert not sampler.busy
        assert ctx.last_overlay is None

    def test_run_fires_on_period(self, app_config):
        ctx = _context(app_config, stream=StubStream())
        sampler = _sampler(ctx)

        async def scenario():
            task = asyncio.get_running_loop().create_task(sampler.run())
            await asyncio.sleep(0.15)
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        asyncio.run(scenario())

        assert sampler.stats.ticks >= 2
        assert sampler.stats.completed >= 1
        assert not sampler.busy


class TestRenderLoop:
    def test_paint_draws_live_frame(self, app_config):
        ctx = _context(app_config, stream=StubStream())
        loop = RenderLoop(ctx)

        assert loop.paint() is True
        assert loop.frames == 1
        assert tuple(ctx.surface.snapshot()[240, 320]) == (64, 64, 64)

    def test_paint_restamps_last_overlay(self, app_config):
        ctx = _context(app_config, stream=StubStream())
        ctx.last_overlay = Overlay(
            detections=[Detection(x1=100, y1=100, x2=300, y2=300, score=1.0)],
            fps_label="FPS: 10.0",
        )

        RenderLoop(ctx).paint()

        pixels = ctx.surface.snapshot()
        assert tuple(pixels[100, 200]) == RED
        assert tuple(pixels[28, 12]) == (255, 255, 255)

    def test_paint_without_frame(self, app_config):
        ctx = _context(app_config)
        assert RenderLoop(ctx).paint() is False

    def test_run_exits_when_stream_inactive(self, app_config):
        ctx = _context(app_config, stream=StubStream(active=False))
        loop = RenderLoop(ctx)

        asyncio.run(loop.run())

        assert loop.frames == 0

    def test_run_stops_after_stream_stops(self, app_config):
        stream = StubStream()
        ctx = _context(app_config, stream=stream)
        loop = RenderLoop(ctx, refresh_hz=100)

        async def scenario():
            task = asyncio.get_running_loop().create_task(loop.run())
            await asyncio.sleep(0.05)
            await stream.stop()
            await asyncio.wait_for(task, timeout=1.0)

        asyncio.run(scenario())

        assert loop.frames >= 1
        assert not loop.quit_requested

    def test_on_frame_false_requests_quit(self, app_config):
        ctx = _context(app_config, stream=StubStream())
        seen = []

        def on_frame(surface):
            seen.append(surface.version)
            return False

        loop = RenderLoop(ctx, on_frame=on_frame)
        asyncio.run(loop.run())

        assert loop.quit_requested
        assert loop.frames == 1
        assert seen == [1]

    @pytest.mark.parametrize("hz", [30, 60])
    def test_refresh_rate_kept(self, app_config, hz):
        assert RenderLoop(_context(app_config), refresh_hz=hz).refresh_hz == hz
