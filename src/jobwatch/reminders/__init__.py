"""
Reminders Module
================

Bounded context for operator reminders and their due/snooze timers.
"""
