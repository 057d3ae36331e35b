"""
SLA Monitoring Module
=====================

Bounded Context for Service Level Agreement tracking.

Responsibilities:
- Fix each ticket's SLA deadline at creation from its priority
- Classify urgency (safe / warning / critical / breached) at any instant
- Detect breaches, freezing resolved tickets at their resolution instant
- Aggregate fleet-wide compliance metrics and the daily trend
- Keep a cached dashboard view fresh on a fixed cadence
"""

__version__ = "1.0.0"
