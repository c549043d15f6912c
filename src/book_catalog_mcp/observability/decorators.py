"""Decorators for tracing catalog operations."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire

from ..errors import CatalogError


def trace_operation(operation: str, kind: str):
    """
    Decorator to trace a resolution engine operation.

    The wrapped coroutine must take the request context as its first
    argument after ``self``.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self, context, *args, **kwargs):
            with logfire.span(
                f"catalog.{kind}.{operation}",
                operation=operation,
                operation_kind=kind,
                authenticated=context.is_authenticated,
            ) as span:
                start_time = datetime.now()

                try:
                    result = await func(self, context, *args, **kwargs)
                except CatalogError as e:
                    span.set_attribute("operation.success", False)
                    span.set_attribute("operation.error_code", e.code)
                    raise
                except Exception as e:
                    span.set_attribute("operation.success", False)
                    span.set_attribute("operation.error", str(e))
                    raise
                finally:
                    span.set_attribute(
                        "operation.duration_ms",
                        (datetime.now() - start_time).total_seconds() * 1000,
                    )

                span.set_attribute("operation.success", True)
                _add_result_metrics(span, result)
                return result

        return wrapper

    return decorator


def _add_result_metrics(span, result: Any) -> None:
    if result is None:
        span.set_attribute("result.null", True)
    elif isinstance(result, list):
        span.set_attribute("result.item_count", len(result))
    elif isinstance(result, int):
        span.set_attribute("result.value", result)
    else:
        span.set_attribute("result.type", type(result).__name__)
