"""IntakeQ <-> GoHighLevel contact synchronizer."""

__version__ = "0.1.0"
