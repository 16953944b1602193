"""Built-in job handlers. Importing this package registers them on ``job_registry``."""

from linqbridge.handlers.connections import SEND_CONNECTION, send_connection

__all__ = ["SEND_CONNECTION", "send_connection"]
