"""Orchestration package for treesync.

- OperationLogger: Structured logging of tree operation results to log files.
"""

from treesync.orchestration.operation_logger import OperationLogger

__all__ = ["OperationLogger"]
