"""Hand-picked release pull requests from an integration branch."""

__version__ = "1.0.0"
