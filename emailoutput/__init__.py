"""Email output: renders log messages into emails and delivers them via SMTP."""

__version__ = "0.1.0"
