"""
Boundary around an external QR decoding capability.

The decoder (a camera + decoding library on the device) is started with a
callback that fires for every decoded frame. The adapter turns that into a
single awaitable scan:

    text = await adapter.scan()

Exactly one decoded value is returned per scan session. The decoder is
stopped and released on every exit path: first decode, cancel(), a start
failure, or the owning view being torn down (the task awaiting scan() is
cancelled). A stop requested while start() is still in flight is issued
once start() has settled.
"""

import asyncio
import logging
from typing import Callable, Optional, Protocol

from qrmenu.notifications import NotificationCenter

logger = logging.getLogger(__name__)

MSG_CAMERA_DENIED = "Camera permission denied. Please allow camera access and try again."
MSG_CAMERA_MISSING = "Camera not found. Please ensure your device has a camera."
MSG_CAMERA_GENERIC = "Failed to start camera. Please ensure camera permissions are granted and try again."


class QrDecoder(Protocol):
    """What the adapter needs from a decoding capability."""

    async def start(self, on_decoded: Callable[[str], None]) -> None:
        """Open the camera and begin calling `on_decoded` for each decoded frame."""

    async def stop(self) -> None:
        """Stop decoding and close the camera stream."""

    async def release(self) -> None:
        """Free any remaining resources (the camera handle)."""


def camera_error_message(exc: BaseException) -> str:
    text = str(exc)
    lowered = text.lower()
    if "not supported" in lowered:
        return text
    if "permission" in lowered:
        return MSG_CAMERA_DENIED
    if "not found" in lowered:
        return MSG_CAMERA_MISSING
    return MSG_CAMERA_GENERIC


class ScanCapabilityAdapter:
    """One decoder session at a time; a new decoder per session."""

    def __init__(self, decoder_factory: Callable[[], QrDecoder], notifier: NotificationCenter):
        self._decoder_factory = decoder_factory
        self._notifier = notifier

        self.is_scanning = False
        self.scan_error: Optional[str] = None

        self._decoder: Optional[QrDecoder] = None
        self._start_task: Optional[asyncio.Task] = None
        self._result: Optional[asyncio.Future] = None

    async def scan(self) -> Optional[str]:
        """
        Run one scan session.

        Returns the first decoded text, or None if the session was cancelled
        or the camera could not be started.
        """
        if self.is_scanning:
            raise RuntimeError("a scan session is already running")

        loop = asyncio.get_running_loop()
        self.is_scanning = True
        self.scan_error = None
        self._result = loop.create_future()
        self._decoder = self._decoder_factory()
        self._start_task = loop.create_task(self._decoder.start(self._on_decoded))
        try:
            try:
                await asyncio.shield(self._start_task)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                message = camera_error_message(exc)
                self.scan_error = message
                logger.error(f"failed to start QR decoder: {exc!r}")
                self._notifier.error(message)
                return None
            return await self._result
        finally:
            await self._teardown()

    def cancel(self) -> None:
        """End the current session without a result."""
        if self._result is not None and not self._result.done():
            self._result.set_result(None)

    def _on_decoded(self, text: str) -> None:
        # Rapid repeated frames of the same code: only the first one counts
        if self._result is None or self._result.done():
            return
        logger.info("QR code decoded")
        self._result.set_result(text)

    async def _teardown(self) -> None:
        decoder, start_task = self._decoder, self._start_task
        try:
            if start_task is not None and not start_task.done():
                # Stop only after start has settled
                await asyncio.wait([start_task])
            if start_task is not None and start_task.done() and not start_task.cancelled():
                started = start_task.exception() is None
            else:
                started = False
            if decoder is not None and started:
                try:
                    await decoder.stop()
                except Exception as exc:
                    logger.warning(f"error stopping QR decoder: {exc!r}")
            if decoder is not None:
                try:
                    await decoder.release()
                except Exception as exc:
                    logger.warning(f"error releasing QR decoder: {exc!r}")
        finally:
            self._decoder = None
            self._start_task = None
            self.cancel()
            self._result = None
            self.is_scanning = False
