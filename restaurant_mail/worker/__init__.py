"""Worker module for the restaurant mail service.

Contains the reconciliation sweep daemon.
"""

from restaurant_mail.worker.processor import MaintenanceWorker

__all__ = ["MaintenanceWorker"]
