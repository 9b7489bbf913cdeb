"""
jobwatch
========

SLA / status escalation engine for a job and ticket tracking portal.
"""

__version__ = "1.0.0"
