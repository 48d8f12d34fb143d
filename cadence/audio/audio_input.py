"""Audio input handling for the tuner."""

from __future__ import annotations
import threading
import time
from typing import Optional, Callable, ClassVar, Dict, Any, List

import numpy as np
import sounddevice as sd
import soundfile as sf

from ..logger import get_logger
from ..core.interfaces import IAudioInput

logger = get_logger(__name__)


def list_input_devices() -> List[Dict[str, Any]]:
    """Return ``{"id", "name", "default_samplerate"}`` for every input-capable device."""
    devices = []
    for device_id, device in enumerate(sd.query_devices()):
        if device["max_input_channels"] > 0:
            devices.append(
                {
                    "id": device_id,
                    "name": device["name"],
                    "default_samplerate": device["default_samplerate"],
                }
            )
    return devices


class SoundDeviceInput(IAudioInput):
    """Live microphone input using the sounddevice library."""

    SAMPLE_RATE: ClassVar[int] = 44100  # Hz
    FRAMES_PER_BUFFER: ClassVar[int] = 1024  # Must match the estimator's hop size
    CHANNELS: ClassVar[int] = 1  # Mono audio

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: Optional[int] = None,
        frames_per_buffer: Optional[int] = None,
        channels: Optional[int] = None,
    ) -> None:
        """Initialize the audio input handler.

        Args:
            device_id: Audio input device ID, or None for the system default
            sample_rate: Sample rate in Hz, or None for default (44100)
            frames_per_buffer: Buffer size in frames, or None for default (1024)
            channels: Number of audio channels, or None for default (1)
        """
        self._device_id = device_id
        self._sample_rate = sample_rate or self.SAMPLE_RATE
        self._frames_per_buffer = frames_per_buffer or self.FRAMES_PER_BUFFER
        self._channels = channels or self.CHANNELS

        self._stream: Optional[sd.InputStream] = None
        self._callback: Optional[Callable[[np.ndarray, float], None]] = None
        self._running = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def frames_per_buffer(self) -> int:
        return self._frames_per_buffer

    def is_running(self) -> bool:
        return self._running

    def _audio_callback(
        self,
        indata: np.ndarray,
        _frames: int,
        _time_info,
        status: sd.CallbackFlags,
    ) -> None:
        """Forward one buffer (first channel only) to the user callback.

        Note:
            This is called from the PortAudio thread, so it must stay fast
            and never block.
        """
        if status:
            logger.warning(f"Audio callback status: {status}")

        if self._callback:
            audio_data = indata[:, 0] if indata.ndim > 1 else indata
            self._callback(audio_data.astype(np.float32, copy=False), time.monotonic())

    def start(self, callback: Callable[[np.ndarray, float], None]) -> bool:
        """Start capturing audio and pass it to the callback.

        Returns:
            True if started successfully, False otherwise
        """
        if self._running:
            logger.warning("Audio input already running")
            return False

        self._callback = callback
        try:
            self._stream = sd.InputStream(
                device=self._device_id,
                samplerate=self._sample_rate,
                blocksize=self._frames_per_buffer,
                channels=self._channels,
                dtype="float32",
                callback=self._audio_callback,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            logger.error(f"Failed to start audio input at {self._sample_rate} Hz: {e}")
            self._stream = None
            self._callback = None
            return False

        self._running = True
        logger.info(
            f"Audio input started: device={self._device_id if self._device_id is not None else 'default'}, "
            f"{self._sample_rate} Hz, {self._frames_per_buffer} frames/buffer"
        )
        return True

    def stop(self) -> None:
        """Stop capturing audio."""
        if not self._running:
            return

        self._running = False
        self._callback = None
        if self._stream is not None:
            try:
                self._stream.stop()
                self._stream.close()
                logger.info("Audio input stopped")
            except sd.PortAudioError as e:
                logger.error(f"Error stopping audio input: {e}")
            finally:
                self._stream = None


class WavFileInput(IAudioInput):
    """Feeds a sound file through the tuner in buffer-sized blocks.

    Timestamps are the file position in seconds, so detection timing follows
    the recording rather than the wall clock.
    """

    def __init__(
        self,
        file_path: str,
        frames_per_buffer: int = 1024,
        loop: bool = False,
        gain: float = 1.0,
        realtime: bool = True,
    ):
        """Initialize the file input.

        Args:
            file_path: Path to any format soundfile can read
            frames_per_buffer: Frames per delivered block
            loop: Restart from the beginning at end of file
            gain: Linear gain applied to every block
            realtime: Sleep between blocks to simulate live playback speed
        """
        self._file_path = file_path
        self._frames_per_buffer = int(frames_per_buffer)
        self._loop = loop
        self._gain = float(gain)
        self._realtime = realtime

        self._callback: Optional[Callable[[np.ndarray, float], None]] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None

        with sf.SoundFile(self._file_path) as f:
            self._sample_rate = f.samplerate
            self._channels = f.channels

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def channels(self) -> int:
        return self._channels

    def is_running(self) -> bool:
        return self._running

    def start(self, callback: Callable[[np.ndarray, float], None]) -> bool:
        if self._running:
            logger.warning("File input already running")
            return False

        self._callback = callback
        self._running = True
        self._thread = threading.Thread(target=self._stream_data, daemon=True)
        self._thread.start()
        logger.info(f"Streaming {self._file_path} at {self._sample_rate} Hz")
        return True

    def stop(self) -> None:
        self._running = False
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the file has been fully delivered.

        Returns:
            True if streaming finished, False on timeout
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _stream_data(self) -> None:
        position = 0
        try:
            with sf.SoundFile(self._file_path) as f:
                while self._running:
                    data = f.read(self._frames_per_buffer, dtype="float32", always_2d=True)
                    if len(data) == 0:
                        if self._loop:
                            f.seek(0)
                            continue
                        break

                    block = data[:, 0]
                    if self._gain != 1.0:
                        block = block * self._gain

                    if self._callback:
                        self._callback(block, position / self._sample_rate)
                    position += len(data)

                    if self._realtime:
                        time.sleep(len(data) / self._sample_rate)
        except (RuntimeError, OSError) as e:
            logger.error(f"Error streaming {self._file_path}: {e}")
        finally:
            self._running = False
            logger.info(f"Finished streaming {self._file_path}")
