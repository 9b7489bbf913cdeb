"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Local store connection management
- Logging setup
"""
