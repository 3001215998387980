# src/thumbnail_pipeline/core/error_handling.py

from typing import Any, Dict, List, Optional, Union

from .observability import LogContext
from .protocols import LoggerProtocol


class BatchOperationContextManager:
    """
    Context manager for batch operations to collect and summarize errors.

    Errors reported with ``add_error`` are expected to be logged already where
    they happened; on exit only a summary line is written. Exceptions raised
    inside the block are never suppressed.
    """

    def __init__(
        self,
        logger: LoggerProtocol,
        operation_name: str = "Batch Operation",
        context: Optional[LogContext] = None,
    ):
        self.operation_name = operation_name
        self.errors: List[Dict[str, Any]] = []
        self.completed = 0
        self._logger = logger
        self._context = context or LogContext(operation=operation_name)

    def __enter__(self) -> "BatchOperationContextManager":
        self._logger.debug(f"Starting {self.operation_name}", self._context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type:
            self._logger.error(
                f"{self.operation_name} aborted: {exc_val}",
                self._context.with_error(exc_val),
            )
        elif self.errors:
            failed = ", ".join(str(error["item"]) for error in self.errors)
            self._logger.warning(
                f"{self.operation_name} completed with {len(self.errors)} error(s)",
                self._context,
                succeeded=self.completed,
                failed_items=failed,
            )
        else:
            self._logger.info(
                f"{self.operation_name} completed successfully",
                self._context,
                succeeded=self.completed,
            )
        return False

    def add_success(self) -> None:
        self.completed += 1

    def add_error(
        self, error: Union[BaseException, str], item_identifier: Any = "Unknown item"
    ) -> None:
        """
        Report an error for a specific item inside the ``with`` block.

        Args:
            error: The exception raised for the item, or its message.
            item_identifier: Identifies the failed item (e.g. a size or key).
        """
        error_type = type(error).__name__ if isinstance(error, BaseException) else ""
        self.errors.append(
            {"item": item_identifier, "error": str(error), "type": error_type}
        )
