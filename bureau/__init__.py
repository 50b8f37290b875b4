"""bureau - graph truth model for studio operations planning."""

__version__ = "0.1.0"
