"""
Background Jobs
===============
Scheduled cache and ledger maintenance.
"""

from rana.jobs.scheduler import MaintenanceScheduler

__all__ = ["MaintenanceScheduler"]
