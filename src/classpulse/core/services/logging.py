"""
Logging service for ClassPulse
"""

import os
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional
import structlog


class LoggingService:
    """Structured logging service"""

    def __init__(self, log_dir: Optional[str] = None):
        from .settings_config_service import get_settings_service

        settings = get_settings_service()
        if log_dir is None:
            log_dir = settings.get_log_dir()
        level_name = settings.get("logging", "default_level", "INFO").upper()
        self.level = getattr(logging, level_name, logging.INFO)
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer(),
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

        self._handlers: list[logging.Handler] = []
        self._setup_handlers()

    def _setup_handlers(self):
        """Set up logging handlers"""
        main_handler = logging.FileHandler(self.log_dir / "classpulse.log")
        main_handler.setLevel(logging.DEBUG)
        main_handler.setFormatter(logging.Formatter("%(message)s"))

        error_handler = logging.FileHandler(self.log_dir / "errors.log")
        error_handler.setLevel(logging.WARNING)
        error_handler.setFormatter(logging.Formatter("%(message)s"))

        console_handler = logging.StreamHandler()
        console_level = (
            logging.DEBUG if os.getenv("CLASSPULSE_DEV_MODE") else logging.INFO
        )
        console_handler.setLevel(console_level)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(self.level)
        for handler in (main_handler, error_handler, console_handler):
            root_logger.addHandler(handler)
            self._handlers.append(handler)

    def close(self):
        """Detach and close this service's handlers"""
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

    def get_logger(self, name: str) -> structlog.stdlib.BoundLogger:
        """Get a structured logger"""
        return structlog.get_logger(name)

    def log_event(
        self,
        logger_name: str,
        level: str,
        event_type: str,
        user_id: Optional[int] = None,
        **kwargs,
    ):
        """Log a structured event"""
        logger = self.get_logger(logger_name)

        log_data = {
            "user_id": user_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **kwargs,
        }

        level_method = getattr(logger, level.lower(), logger.info)
        level_method(event_type, **log_data)

    def log_crud_operation(
        self,
        operation: str,
        entity: str,
        entity_id: Any,
        user_id: Optional[int] = None,
        **kwargs,
    ):
        """Log CRUD operation"""
        self.log_event(
            "crud",
            "INFO",
            f"crud.{operation}",
            user_id=user_id,
            entity=entity,
            entity_id=entity_id,
            **kwargs,
        )

    def log_auth_event(
        self,
        event: str,
        user_id: Optional[int] = None,
        success: bool = True,
        **kwargs,
    ):
        """Log authentication event"""
        self.log_event(
            "auth",
            "INFO" if success else "WARNING",
            f"auth.{event}",
            user_id=user_id,
            success=success,
            **kwargs,
        )

    def log_access_denied(
        self,
        action: str,
        user_id: Optional[int] = None,
        reason: Optional[str] = None,
        **kwargs,
    ):
        """Log an authorization denial"""
        self.log_event(
            "access",
            "WARNING",
            f"access.denied.{action}",
            user_id=user_id,
            reason=reason,
            **kwargs,
        )

    def log_error(
        self,
        error_type: str,
        error_message: str,
        user_id: Optional[int] = None,
        **kwargs,
    ):
        """Log error event"""
        self.log_event(
            "error",
            "ERROR",
            f"error.{error_type}",
            user_id=user_id,
            error_message=error_message,
            **kwargs,
        )


# Global logging service instance
_logging_service: Optional[LoggingService] = None


def get_logging_service() -> LoggingService:
    """Get the global logging service instance"""
    global _logging_service
    if _logging_service is None:
        _logging_service = LoggingService()
    return _logging_service


def reset_logging_service():
    """Close and drop the global instance (tests switch log dirs)."""
    global _logging_service
    if _logging_service is not None:
        _logging_service.close()
    _logging_service = None


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance"""
    return get_logging_service().get_logger(name)
