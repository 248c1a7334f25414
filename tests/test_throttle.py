"""Tests for the load gate."""

import asyncio
from unittest.mock import MagicMock

import pytest

from conftest import FakeClock, SequenceSampler
from shell_history.config import LoadThrottleConfig
from shell_history.load import LoadSampler
from shell_history.throttle import LoadGate


def _gate(readings, clock: FakeClock, **kwargs) -> LoadGate:
    return LoadGate(
        sample=SequenceSampler(readings),
        sleep=clock.sleep,
        clock=clock,
        **kwargs,
    )


class TestLoadGate:
    """Tests for LoadGate.wait."""

    @pytest.mark.asyncio
    async def test_low_load_admits_without_sleeping(self, fake_clock):
        """Test no polling delay when the first sample is under threshold."""
        result = await _gate([40.0], fake_clock).wait()
        assert fake_clock.sleeps == []
        assert result.polls == 0
        assert result.load == 40.0
        assert result.timed_out is False

    @pytest.mark.asyncio
    async def test_load_at_threshold_admits(self, fake_clock):
        """Test load equal to the threshold is acceptable."""
        result = await _gate([82.0], fake_clock).wait()
        assert fake_clock.sleeps == []
        assert result.polls == 0

    @pytest.mark.asyncio
    async def test_unknown_load_admits(self, fake_clock):
        """Test an unknown reading is treated as admit, not as zero or infinity."""
        result = await _gate([None], fake_clock).wait()
        assert fake_clock.sleeps == []
        assert result.load is None

    @pytest.mark.asyncio
    async def test_polls_until_load_drops(self, fake_clock):
        """Test polling at the fixed interval until load is acceptable."""
        sampler = SequenceSampler([95.0, 90.0, 50.0])
        gate = LoadGate(sample=sampler, sleep=fake_clock.sleep, clock=fake_clock)
        result = await gate.wait()
        assert fake_clock.sleeps == [5.0, 5.0]
        assert sampler.calls == 3
        assert result.polls == 2
        assert result.waited_seconds == 10.0
        assert result.load == 50.0
        assert result.timed_out is False

    @pytest.mark.asyncio
    async def test_gives_up_at_deadline(self, fake_clock):
        """Test sustained load admits after exactly the maximum wait."""
        result = await _gate([99.0], fake_clock).wait()
        assert sum(fake_clock.sleeps) == 300.0
        assert len(fake_clock.sleeps) == 60
        assert result.timed_out is True
        assert result.waited_seconds == 300.0
        assert result.load == 99.0

    @pytest.mark.asyncio
    async def test_last_sleep_clipped_to_deadline(self, fake_clock):
        """Test total wait never exceeds the maximum when intervals overshoot."""
        result = await _gate(
            [99.0], fake_clock, poll_interval_seconds=7.0, max_wait_seconds=20.0
        ).wait()
        assert fake_clock.sleeps == [7.0, 7.0, 6.0]
        assert result.waited_seconds == 20.0
        assert result.timed_out is True

    @pytest.mark.asyncio
    async def test_load_becoming_unknown_releases(self, fake_clock):
        """Test an unreadable sample mid-wait admits immediately."""
        result = await _gate([99.0, None], fake_clock).wait()
        assert fake_clock.sleeps == [5.0]
        assert result.load is None
        assert result.timed_out is False

    @pytest.mark.asyncio
    async def test_zero_max_wait_never_sleeps(self, fake_clock):
        result = await _gate([99.0], fake_clock, max_wait_seconds=0).wait()
        assert fake_clock.sleeps == []
        assert result.timed_out is True

    @pytest.mark.asyncio
    async def test_custom_threshold(self, fake_clock):
        result = await _gate([60.0, 40.0], fake_clock, max_load_percent=50.0).wait()
        assert fake_clock.sleeps == [5.0]
        assert result.load == 40.0

    @pytest.mark.asyncio
    async def test_disabled_gate_skips_sampling(self, fake_clock):
        sampler = MagicMock(return_value=99.0)
        gate = LoadGate(sample=sampler, enabled=False, sleep=fake_clock.sleep, clock=fake_clock)
        result = await gate.wait()
        sampler.assert_not_called()
        assert result.polls == 0

    @pytest.mark.asyncio
    async def test_real_sleep_is_cancellable(self):
        """Test the wait yields to the event loop and can be cancelled."""
        gate = LoadGate(
            sample=lambda: 99.0,
            poll_interval_seconds=0.01,
            max_wait_seconds=60.0,
        )
        task = asyncio.ensure_future(gate.wait())
        await asyncio.sleep(0.05)
        assert not task.done()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_real_sleep_respects_deadline(self):
        gate = LoadGate(
            sample=lambda: 99.0,
            poll_interval_seconds=0.01,
            max_wait_seconds=0.05,
        )
        result = await asyncio.wait_for(gate.wait(), timeout=5.0)
        assert result.timed_out is True


class TestFromConfig:
    """Tests for LoadGate.from_config."""

    def test_copies_settings(self, throttle_config):
        throttle_config.max_load_percent = 70.0
        throttle_config.max_wait_seconds = 12.0
        gate = LoadGate.from_config(throttle_config)
        assert gate.max_load_percent == 70.0
        assert gate.max_wait_seconds == 12.0
        assert gate.poll_interval_seconds == 5.0

    @pytest.mark.asyncio
    async def test_default_sampler_reads_configured_path(self, tmp_path, fake_clock):
        path = tmp_path / "loadavg"
        path.write_text("0.00 0.00 0.00 1/1 1\n")
        config = LoadThrottleConfig(loadavg_path=str(path))
        gate = LoadGate.from_config(config, sleep=fake_clock.sleep, clock=fake_clock)
        result = await gate.wait()
        assert result.load == 0.0
        assert fake_clock.sleeps == []

    def test_default_sampler_type(self):
        gate = LoadGate.from_config(LoadThrottleConfig())
        assert isinstance(gate._sample, LoadSampler)
