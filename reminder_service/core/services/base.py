"""Base service class for business logic."""

from __future__ import annotations

import logging

from reminder_service.infra.logging import get_lazy_logger


class BaseService:
    """Base class for all service classes.

    Loggers:
        - self.logger: Standard logger for INFO/WARNING/ERROR (always evaluated)
        - self._lazy: Lazy logger for DEBUG (zero overhead when DEBUG disabled)

    Example:
            class TaskService(BaseService):
            def __init__(self, repository: TaskRepository):
                super().__init__()
                self.repository = repository
    """

    def __init__(self) -> None:
        """Initialize base service with loggers."""
        class_name = self.__class__.__name__
        self.logger = logging.getLogger(class_name)
        self._lazy = get_lazy_logger(class_name)
