"""
Test fixtures for deterministic testing.

This module provides:
- RecordingNotifier: notifier double that records calls and can fail
- BrokenDatabase: database whose connections always fail
- EventRecorder: captures everything published on an EventBus
- make_record: SessionRecord factory
"""

from .doubles import BrokenDatabase, EventRecorder, RecordingNotifier, make_record

__all__ = ["BrokenDatabase", "EventRecorder", "RecordingNotifier", "make_record"]
