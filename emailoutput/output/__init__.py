"""Message output package.

Validates plugin and per-stream configuration, renders log messages into
email bodies, and delivers them over a single SMTP connection per batch.
"""
