"""Memory Friend - memory companion for elders and their caregivers."""

__version__ = "0.1.0"
