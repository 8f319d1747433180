"""
Structured logging for zmigrate.

JSON logs with timestamp, event_type, txid and pool context.
Use get_logger() in all modules for aggregation-friendly output.
"""

from zmigrate.zmigrate_logging.logger import bind_transaction, get_logger

__all__ = ["bind_transaction", "get_logger"]
