"""Exceptions raised by the synchronization engine."""


class SyncCancelledError(Exception):
    """
    A sync run was asked to stop while waiting or between records.

    Distinct from ordinary failures: the orchestrator records the run as
    cancelled instead of failed, and nothing is retried.
    """
