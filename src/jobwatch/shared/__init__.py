"""
Shared Kernel Module
====================

Generic infrastructure used by every bounded context (sla, reminders,
notifications): logging, the local store, the clock and the HTTP glue.

No business rules from a bounded context belong here.
"""
