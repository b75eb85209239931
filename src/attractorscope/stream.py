"""
Threaded real-time analysis stream.

Architecture Overview
---------------------
::

    Capture source (driver callback thread)
        │  CaptureBridge: downmix to mono
        ▼
    samples Channel (bounded, ~4 chunks)
        │
        ▼
    AnalyzerWorker thread
        │  SnapshotEngine: accumulate → FFT/peaks → kick detection
        ▼
    snapshots Channel (latest wins, depth 1)
        │
        ▼
    AudioStream.poll()  (render thread, once per frame, never blocks)

Threads only share data through channels. Closing the samples channel
shuts the analyzer down once it has drained whatever was already queued.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

import numpy as np

from attractorscope.core.downmix import downmix
from attractorscope.core.engine import SnapshotEngine
from attractorscope.core.snapshot import StateSnapshot

logger = logging.getLogger(__name__)

# How often blocked channel operations re-check for closure
_POLL_INTERVAL = 0.05


class ChannelClosed(Exception):
    """The other end of a channel has gone away."""


class Channel:
    """
    Bounded single-producer/single-consumer channel with a close flag.

    Args:
        capacity: Maximum queued items.
        latest_wins: When full, replace the oldest item instead of blocking.
    """

    def __init__(self, capacity: int, latest_wins: bool = False):
        if capacity < 1:
            raise ValueError(f"Channel capacity must be >= 1, got {capacity}")
        self._queue: queue.Queue = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self.latest_wins = latest_wins
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Close the channel. Queued items can still be received."""
        self._closed.set()

    def __len__(self) -> int:
        return self._queue.qsize()

    def send(self, item: Any) -> None:
        """
        Queue an item.

        Blocks while the channel is full unless ``latest_wins`` is set, in
        which case the stale item is discarded.

        Raises:
            ChannelClosed: If the channel was closed.
        """
        if self.latest_wins:
            self._send_latest(item)
            return

        while True:
            if self.closed:
                raise ChannelClosed("send on closed channel")
            try:
                self._queue.put(item, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                continue

    def _send_latest(self, item: Any) -> None:
        if self.closed:
            raise ChannelClosed("send on closed channel")
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                    self.dropped += 1
                except queue.Empty:
                    pass

    def recv(self) -> Any:
        """
        Wait for the next item.

        Raises:
            ChannelClosed: Once the channel is closed and drained.
        """
        while True:
            try:
                return self._queue.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                if self.closed:
                    raise ChannelClosed("channel closed and drained") from None

    def try_recv(self) -> Any | None:
        """
        Return the next item, or None if nothing is queued.

        Raises:
            ChannelClosed: If the channel is closed and drained.
        """
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            if self.closed:
                raise ChannelClosed("channel closed and drained") from None
            return None


class CaptureSource(Protocol):
    """Anything that delivers interleaved float chunks to a callback."""

    sample_rate: float
    channels: int

    def start(self, callback: Callable[[np.ndarray], None]) -> None: ...

    def stop(self) -> None: ...


@dataclass
class StreamConfig:
    """Runtime settings for :class:`AudioStream`."""

    sample_queue_capacity: int = 4
    snapshot_queue_capacity: int = 1
    join_timeout: float = 2.0
    with_display: bool = False


class CaptureBridge:
    """
    Capture callback: downmixes each chunk and forwards it to the analyzer.

    Never raises into the driver thread. Malformed chunks are logged and
    dropped. Once the analyzer side is gone, chunks are dropped and the
    disconnect is logged once.
    """

    def __init__(self, channels: int, samples: Channel):
        self.channels = channels
        self.samples = samples
        self.chunks_sent = 0
        self.chunks_dropped = 0
        self.detached = False
        self._disconnect_logged = False

    def detach(self) -> None:
        """Drop all further chunks silently (used during shutdown)."""
        self.detached = True

    def __call__(self, chunk: np.ndarray) -> None:
        if self.detached:
            return
        try:
            mono = downmix(chunk, self.channels)
        except ValueError as e:
            logger.warning("Dropping malformed capture chunk: %s", e)
            self.chunks_dropped += 1
            return
        if mono.size == 0:
            return
        try:
            self.samples.send(mono)
            self.chunks_sent += 1
        except ChannelClosed:
            if not self._disconnect_logged:
                logger.warning("Audio processor receiver disconnected; dropping chunks")
                self._disconnect_logged = True
            self.chunks_dropped += 1


class AnalyzerWorker(threading.Thread):
    """Analyzer thread: turns queued samples into published snapshots."""

    def __init__(self, engine: SnapshotEngine, samples: Channel, snapshots: Channel):
        super().__init__(name="attractorscope-analyzer", daemon=True)
        self.engine = engine
        self.samples = samples
        self.snapshots = snapshots
        self._consumer_gone = False

    def _publish(self, snapshot: StateSnapshot) -> None:
        try:
            self.snapshots.send(snapshot)
        except ChannelClosed:
            if not self._consumer_gone:
                logger.warning("Snapshot consumer disconnected; analysis continues")
                self._consumer_gone = True

    def run(self) -> None:
        engine = self.engine
        logger.info(
            "Analyzer started: %.0f Hz, window %d (%.2f Hz per bin)",
            engine.sample_rate,
            engine.window_size,
            engine.analyzer.frequency_resolution,
        )
        try:
            while True:
                while not engine.accumulator.ready:
                    engine.accumulator.extend(self.samples.recv())
                snapshot = engine.process_window(engine.accumulator.take_window())
                self._publish(snapshot)
        except ChannelClosed:
            logger.info(
                "Sample channel closed; analyzer stopping after %d windows",
                engine.windows_processed,
            )
        finally:
            # Unblocks the capture side if we exit for any other reason
            self.samples.close()


class AudioStream:
    """
    Live analysis of a capture source.

    Usage::

        with AudioStream(DeviceCapture()) as stream:
            while running:
                snapshot = stream.poll()
                state = polisher.update(snapshot, dt)
    """

    def __init__(self, source: CaptureSource, config: StreamConfig | None = None):
        self.source = source
        self.config = config or StreamConfig()
        self.engine: SnapshotEngine | None = None
        self.samples: Channel | None = None
        self.snapshots: Channel | None = None
        self.bridge: CaptureBridge | None = None
        self._worker: AnalyzerWorker | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and self._worker.is_alive()

    @property
    def windows_processed(self) -> int:
        return self.engine.windows_processed if self.engine else 0

    def start(self) -> None:
        """Spawn the analyzer thread and start capturing."""
        if self.running:
            return
        cfg = self.config
        self.engine = SnapshotEngine(
            self.source.sample_rate,
            realtime=True,
            with_display=cfg.with_display,
        )
        self.samples = Channel(cfg.sample_queue_capacity)
        self.snapshots = Channel(cfg.snapshot_queue_capacity, latest_wins=True)
        self.bridge = CaptureBridge(self.source.channels, self.samples)

        self._worker = AnalyzerWorker(self.engine, self.samples, self.snapshots)
        self._worker.start()
        try:
            self.source.start(self.bridge)
        except BaseException:
            logger.error("Capture source failed to start; shutting analyzer down")
            self.bridge.detach()
            self.samples.close()
            self.wait(self.config.join_timeout)
            self.snapshots.close()
            raise

    def poll(self) -> StateSnapshot | None:
        """Newest unread snapshot, or None. Never blocks."""
        if self.snapshots is None:
            return None
        try:
            return self.snapshots.try_recv()
        except ChannelClosed:
            return None

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the analyzer thread exits. Returns True if it did."""
        if self._worker is None:
            return True
        self._worker.join(timeout)
        return not self._worker.is_alive()

    def end_of_input(self) -> None:
        """
        Mark the input as finished.

        Chunks already queued are still analyzed; the analyzer exits once
        they are drained.
        """
        if self.samples is not None:
            self.samples.close()

    def stop(self) -> None:
        """Stop capture and let the analyzer drain and exit."""
        if self.bridge is not None:
            self.bridge.detach()
        if self.samples is not None:
            self.samples.close()
        self.source.stop()
        if self._worker is not None:
            t0 = time.monotonic()
            if not self.wait(self.config.join_timeout):
                logger.warning(
                    "Analyzer thread did not exit within %.1fs", self.config.join_timeout
                )
            else:
                logger.debug("Analyzer joined in %.3fs", time.monotonic() - t0)
        if self.snapshots is not None:
            self.snapshots.close()

    def __enter__(self) -> "AudioStream":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
