"""Reminder alert scheduling for the medical tracking dashboard.

This package decides when each reminder should raise an alert and renders
alerts as sound cues and desktop notifications, isolated from the backend and
host environment behind small protocols for easy testing.
"""
