"""Telemetry helpers for docketwatch fetch workflows."""

from .fetch import record_fetch_attempt

__all__ = ["record_fetch_attempt"]
