"""Concurrent vacancy search over HH.ru and SuperJob, with caching, circuit breaking and a job queue."""

__version__ = "0.1.0"