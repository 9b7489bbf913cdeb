"""
SLA Monitoring Module
=====================

Bounded context for job SLA tracking: policies, status evaluation and
breach detection.
"""
