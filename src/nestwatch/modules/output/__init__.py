"""Notification outputs."""

from .event_sink import BusEventSink, CameraEventSink, RecordingEventSink

__all__ = ["BusEventSink", "CameraEventSink", "RecordingEventSink"]
