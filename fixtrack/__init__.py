"""
Fix Tracker

Acquires location fixes from a positioning provider, logs every fix to an
append-only history file, and exports that history as CSV.
"""

__version__ = "1.0.0"
