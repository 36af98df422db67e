"""Tests for utils/throttle.py — PageThrottle."""

from __future__ import annotations

import time

import pytest

from discogs_tracker.utils.throttle import PageThrottle


@pytest.mark.asyncio
async def test_first_wait_does_not_block() -> None:
    throttle = PageThrottle(min_interval=5.0)
    start = time.monotonic()
    await throttle.wait()
    assert time.monotonic() - start < 1.0


@pytest.mark.asyncio
async def test_successive_waits_are_spaced() -> None:
    throttle = PageThrottle(min_interval=0.05)
    marks = []
    for _ in range(3):
        await throttle.wait()
        marks.append(time.monotonic())

    assert all(b - a >= 0.045 for a, b in zip(marks, marks[1:]))


@pytest.mark.asyncio
async def test_elapsed_time_counts_toward_interval() -> None:
    """No extra sleep when the caller was already slower than the interval."""
    throttle = PageThrottle(min_interval=0.01)
    await throttle.wait()
    time.sleep(0.02)
    start = time.monotonic()
    await throttle.wait()
    assert time.monotonic() - start < 0.01


def test_negative_interval_clamped() -> None:
    assert PageThrottle(min_interval=-1).interval == 0.0
