"""The expiry chime.

A struck-bell tone synthesized with numpy: each strike is a few inharmonic
partials under an exponential decay, and successive strikes alternate
between two pitches.  The WAV is rendered once per launch into the app
support directory and played through ``QSoundEffect`` whenever an alarm
fires.
"""

from __future__ import annotations

import io
import logging
import wave
from pathlib import Path

import numpy as np

from PyQt6.QtCore import QObject, QUrl
from PyQt6.QtMultimedia import QSoundEffect


logger = logging.getLogger(__name__)

APP_SUPPORT_DIR = Path.home() / ".local" / "share" / "Multimer"
CHIME_PATH = APP_SUPPORT_DIR / "expiry.wav"

SAMPLE_RATE = 22050

# (frequency ratio, amplitude) of each partial in one strike
_PARTIALS = ((1.0, 1.0), (2.76, 0.45), (5.40, 0.2))
_PITCHES = (1046.5, 1318.5)  # C6, E6

_RING_S = 0.6     # how long one strike sounds
_SPACING_S = 0.3  # time between strikes
_ATTACK_S = 0.005


def expiry_chime(strikes: int = 4, sample_rate: int = SAMPLE_RATE) -> np.ndarray:
    """Float samples in [-1, 1] for *strikes* overlapping bell strikes."""
    if strikes < 1:
        raise ValueError("a chime needs at least one strike")

    n_ring = int(_RING_S * sample_rate)
    step = int(_SPACING_S * sample_rate)
    t = np.arange(n_ring) / sample_rate
    shape = np.exp(-7.0 * t) * np.minimum(1.0, t / _ATTACK_S)

    out = np.zeros(step * (strikes - 1) + n_ring)
    for i in range(strikes):
        pitch = _PITCHES[i % len(_PITCHES)]
        strike = sum(
            amp * np.sin(2 * np.pi * pitch * ratio * t) for ratio, amp in _PARTIALS
        )
        out[i * step:i * step + n_ring] += strike * shape

    return out / np.abs(out).max() * 0.8


def encode_wav(samples: np.ndarray, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Mono 16-bit PCM WAV bytes from float samples."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


class AlarmChime(QObject):
    """Plays the expiry chime at a fixed volume (0-100)."""

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        path: Path | None = None,
        volume: int = 70,
    ) -> None:
        super().__init__(parent)
        self._path = path or CHIME_PATH
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_bytes(encode_wav(expiry_chime()))

        self._effect = QSoundEffect(self)
        self._effect.setSource(QUrl.fromLocalFile(str(self._path)))
        self._effect.setVolume(max(0, min(volume, 100)) / 100.0)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def volume(self) -> int:
        return round(self._effect.volume() * 100)

    def ring(self) -> None:
        logger.debug("Ringing expiry chime")
        self._effect.play()
