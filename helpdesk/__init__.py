"""
Helpdesk SLA
============

SLA tracking engine for an IT support ticketing system.
"""

__version__ = "1.0.0"
