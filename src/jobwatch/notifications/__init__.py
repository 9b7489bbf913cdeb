"""
Notifications Module
====================

Bounded context for the notification list and per-job timelines.
"""
