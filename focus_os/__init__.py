"""
Focus Time OS - study timer, distraction blocking, free-slot finder, streaks.

Layers:
- session: countdown timer state machine and app-switch blocking
- calendar: free study slots between calendar events
- stats: append-only session log, streak tracking, aggregation

Everything is constructed explicitly and wired in focus_os.app.FocusApp.
"""

__version__ = "0.4.0"
