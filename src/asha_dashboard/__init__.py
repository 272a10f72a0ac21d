"""ASHA Dashboard - roster, follow-up flags and IVR calls for ASHA workers."""

__version__ = "0.1.0"
