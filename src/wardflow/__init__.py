"""
WardFlow: temporal occupancy and cohort-membership engine for hospital units.

This package provides tools for deriving bed occupancy, range and shift based
registry filters, occupancy time series and outcome statistics from a snapshot
of patient lifecycle records.
"""

__version__ = "0.1.0"
