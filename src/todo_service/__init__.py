"""Personal task-tracking service.

Keeps an in-memory collection of short text tasks, each with completion and
importance flags, and exposes it over JSON-RPC (stdio or HTTP) and a REST API.
"""

__version__ = "0.1.0"
