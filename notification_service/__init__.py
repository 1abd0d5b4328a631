"""Notification dispatch engine for the donation platform."""

__version__ = "0.1.0"
