"""Audio package."""

from .chime import AlarmChime, encode_wav, expiry_chime

__all__ = ["AlarmChime", "encode_wav", "expiry_chime"]
