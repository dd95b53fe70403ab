"""
slotbook - Book half-hour appointments within business hours.
"""

__version__ = "0.1.0"
