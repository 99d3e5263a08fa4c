"""Weekly task report generation and delivery."""

__version__ = "0.1.0"
