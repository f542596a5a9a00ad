"""
Logging utilities for the Blacklist Alliance client.

Wraps stdlib logging with structured context fields and accepts pluggable
loggers: any object exposing some of debug/info/warn/warning/error. Methods
a pluggable logger does not implement are skipped.
"""

import functools
import inspect
import logging
from typing import Any, Callable, Dict, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., Any])

# Method names tried, in order, for each stdlib level on a pluggable logger
_LEVEL_METHODS = {
    logging.DEBUG: ("debug",),
    logging.INFO: ("info",),
    logging.WARNING: ("warn", "warning"),
    logging.ERROR: ("error",),
    logging.CRITICAL: ("error",),
}


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_with_context(
    logger: Any,
    level: int,
    msg: str,
    **kwargs: Any,
) -> None:
    """
    Log with structured context fields.

    Stdlib loggers receive the context as ``extra``. Pluggable loggers are
    called as ``logger.<method>(msg, context)``.

    Args:
        logger: logging.Logger or pluggable logger object
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (url, attempt, http_status, etc.)

    Example:
        log_with_context(
            logger, logging.WARNING, "Retry attempt 1/3",
            url=url,
            delay_ms=112,
        )
    """
    if logger is None:
        return

    if isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        logger.log(level, msg, extra=kwargs)
        return

    for name in _LEVEL_METHODS.get(level, ("info",)):
        method = getattr(logger, name, None)
        if callable(method):
            method(msg, kwargs)
            return


def log_exception(
    logger: Any,
    exc: BaseException,
    msg: str,
    level: int = logging.ERROR,
    include_traceback: bool = True,
    **kwargs: Any,
) -> None:
    """
    Log exception with context and optional traceback.

    Automatically extracts error_kind and http_status from
    BlacklistAllianceError instances.

    Args:
        logger: Logger instance
        exc: Exception to log
        msg: Context message
        level: Log level (default: ERROR)
        include_traceback: Include full traceback (default: True)
        **kwargs: Additional context fields
    """
    if kwargs.get("error_kind") is None and hasattr(exc, "kind"):
        kind = exc.kind
        kwargs["error_kind"] = kind.value if hasattr(kind, "value") else str(kind)
    if kwargs.get("http_status") is None and getattr(exc, "status_code", None):
        kwargs["http_status"] = exc.status_code

    error_msg = str(exc)
    if len(error_msg) > 500:
        error_msg = error_msg[:500] + "..."
    kwargs["error_message"] = error_msg

    if isinstance(logger, (logging.Logger, logging.LoggerAdapter)):
        if include_traceback:
            logger.log(level, msg, exc_info=exc, extra=kwargs)
        else:
            logger.log(level, msg, extra=kwargs)
        return

    log_with_context(logger, level, msg, **kwargs)


def _extract_instance_context(obj: Any) -> Dict[str, Any]:
    """
    Extract loggable context from instance attributes.

    Args:
        obj: Object instance

    Returns:
        Dict with identifier fields
    """
    ctx: Dict[str, Any] = {}

    for attr in ["circuit_name", "base_url"]:
        if hasattr(obj, attr):
            value = getattr(obj, attr)
            if value is not None:
                ctx[attr] = value

    return ctx


def logged_operation(
    level: int = logging.DEBUG,
    log_start: bool = False,
    operation_name: Optional[str] = None,
) -> Callable[[F], F]:
    """
    Decorator for automatic operation logging on async client methods.

    Args:
        level: Log level for completion message
        log_start: Also log when operation starts
        operation_name: Override operation name (default: method_name)

    Example:
        class Client(LoggedClass):
            @logged_operation(level=logging.DEBUG)
            async def lookup(self, phone):
                ...
    """

    def decorator(func: F) -> F:
        if not inspect.iscoroutinefunction(func):
            raise TypeError("logged_operation only decorates coroutine functions")

        @functools.wraps(func)
        async def async_wrapper(self, *args, **kwargs):
            _logger = getattr(self, "_logger", None) or get_logger(
                self.__class__.__module__
            )
            op_name = operation_name or func.__name__
            full_op = f"{self.__class__.__name__}.{op_name}"

            if log_start:
                log_with_context(_logger, level, f"{full_op} starting")

            try:
                result = await func(self, *args, **kwargs)
            except Exception as e:
                log_exception(_logger, e, f"{full_op} failed", include_traceback=False)
                raise
            log_with_context(_logger, level, f"{full_op} completed")
            return result

        return async_wrapper  # type: ignore

    return decorator


class LoggedClass:
    """
    Mixin providing logging infrastructure for classes.

    Provides:
    - self._logger: Logger instance (stdlib or pluggable)
    - self._log(): Log with auto-extracted context
    - self._log_exception(): Exception logging with context

    A pluggable logger passed as ``logger=`` replaces the module logger.
    """

    log_component: Optional[str] = None  # Optional logger name suffix

    def __init__(self, *args, logger: Any = None, **kwargs):
        if logger is None:
            logger_name = self.__class__.__module__
            if self.log_component:
                logger_name = f"{logger_name}.{self.log_component}"
            logger = get_logger(logger_name)
        self._logger = logger
        super().__init__(*args, **kwargs)

    def _log(self, level: int, msg: str, **extra: Any) -> None:
        """
        Log with automatic context extraction from instance.

        Args:
            level: Log level
            msg: Log message
            **extra: Additional context fields
        """
        context = _extract_instance_context(self)
        context.update(extra)
        log_with_context(self._logger, level, msg, **context)

    def _log_exception(
        self,
        exc: BaseException,
        msg: str,
        level: int = logging.ERROR,
        **extra: Any,
    ) -> None:
        """
        Log exception with automatic context extraction from instance.

        Args:
            exc: Exception to log
            msg: Context message
            level: Log level (default: ERROR)
            **extra: Additional context fields
        """
        context = _extract_instance_context(self)
        context.update(extra)
        log_exception(self._logger, exc, msg, level=level, **context)
