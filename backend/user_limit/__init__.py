"""User limit service.

Keeps only the configured number of longest-registered users in the host
users table, enforced by a recurring eviction job.
"""

__version__ = "1.0.0"
