"""
Quest passthrough stream capability.

Receives passthrough frames from the headset app over TCP. The headset
connects through ADB reverse port forwarding and sends frames as:
    [4-byte little-endian size][JPEG data]

SETUP:
1. Connect Quest via USB
2. Run: adb reverse tcp:9090 tcp:9090
3. Launch the headset app

The socket is non-blocking and pumped from poll() once per tick, so no
background thread is involved. Only the newest complete frame is decoded.
"""

from __future__ import annotations

import socket
import struct
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

import cv2
import numpy as np
from numpy.typing import NDArray
from loguru import logger

from colorfinder.capture.capabilities import CameraAccessCapability, FrameSource

if TYPE_CHECKING:
    from colorfinder.core.context import AppContext


HEADER = struct.Struct('<I')
MAX_FRAME_BYTES = 16 * 1024 * 1024
RECV_CHUNK = 256 * 1024


def extract_frames(buffer: bytearray) -> Tuple[List[bytes], bytearray]:
    """
    Split complete length-prefixed payloads off the front of a buffer.

    Returns:
        Tuple of (payloads, remaining bytes)

    Raises:
        ValueError: If a header announces an impossible frame size
    """
    payloads: List[bytes] = []
    offset = 0

    while len(buffer) - offset >= HEADER.size:
        (size,) = HEADER.unpack_from(buffer, offset)
        if size == 0 or size > MAX_FRAME_BYTES:
            raise ValueError(f"Invalid frame size {size}")

        end = offset + HEADER.size + size
        if end > len(buffer):
            break

        payloads.append(bytes(buffer[offset + HEADER.size:end]))
        offset = end

    return payloads, bytearray(buffer[offset:])


def decode_jpeg(payload: bytes) -> Optional[NDArray[np.uint8]]:
    """Decode a JPEG payload to RGB, or None if it is not a valid image."""
    data = np.frombuffer(payload, dtype=np.uint8)
    bgr = cv2.imdecode(data, cv2.IMREAD_COLOR)
    if bgr is None:
        return None
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


class QuestStreamCapability(CameraAccessCapability):
    """TCP server that receives stereo passthrough frames from the headset."""

    def __init__(self, host: str = '0.0.0.0', port: int = 9090):
        self.host = host
        self.port = port

        self._server: Optional[socket.socket] = None
        self._client: Optional[socket.socket] = None
        self._buffer = bytearray()

        self._stereo: Optional[NDArray[np.uint8]] = None
        self._left: Optional[NDArray[np.uint8]] = None
        self._frames_received = 0

    @classmethod
    def from_context(cls, context: AppContext) -> QuestStreamCapability:
        return cls(context.config.quest_stream_host, context.config.quest_stream_port)

    def start(self) -> None:
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server.bind((self.host, self.port))
            server.listen(1)
            server.setblocking(False)
        except OSError:
            server.close()
            raise

        self._server = server
        logger.info(
            f"Quest stream listening on {self.host}:{self.port} "
            f"(adb reverse tcp:{self.port} tcp:{self.port})"
        )

    def poll(self) -> None:
        if self._server is None:
            return

        if self._client is None:
            self._accept()
            if self._client is None:
                return

        self._receive()

    def _accept(self):
        try:
            client, addr = self._server.accept()
        except (BlockingIOError, InterruptedError):
            return

        client.setblocking(False)
        client.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self._client = client
        self._buffer = bytearray()
        logger.info(f"Quest connected from {addr}")

    def _receive(self):
        while True:
            try:
                chunk = self._client.recv(RECV_CHUNK)
            except (BlockingIOError, InterruptedError):
                break
            except OSError as e:
                logger.warning(f"Quest connection lost: {e}")
                self._drop_client()
                return

            if not chunk:
                logger.warning("Quest disconnected")
                self._drop_client()
                return
            self._buffer.extend(chunk)

        try:
            payloads, self._buffer = extract_frames(self._buffer)
        except ValueError as e:
            logger.warning(f"Quest stream out of sync: {e}")
            self._drop_client()
            return

        if payloads:
            self._set_frame(decode_jpeg(payloads[-1]))

    def _set_frame(self, image: Optional[NDArray[np.uint8]]):
        if image is None:
            logger.debug("Dropped undecodable Quest frame")
            return

        self._frames_received += 1
        self._stereo = image
        half = image.shape[1] // 2
        self._left = image[:, :half] if half > 0 else image

    def _drop_client(self):
        if self._client is not None:
            try:
                self._client.close()
            except OSError as e:
                logger.debug(f"Error closing Quest socket: {e}")
        self._client = None
        self._buffer = bytearray()
        self._stereo = None
        self._left = None

    def frame_sources(self) -> Dict[str, FrameSource]:
        return {
            "stereo_texture": lambda: self._stereo,
            "left_color_texture": lambda: self._left,
        }

    def stop(self) -> None:
        self._drop_client()
        if self._server is not None:
            self._server.close()
            self._server = None
        logger.info("Quest stream stopped")

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def frames_received(self) -> int:
        return self._frames_received
