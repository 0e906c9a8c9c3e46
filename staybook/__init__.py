"""StayBook guest-facing reservation booking engine."""

__version__ = "0.1.0"
