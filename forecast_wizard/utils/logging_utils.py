"""
Structured input/output logging for the forecast wizard backend.

Provides a @log_io decorator that logs function arguments on entry and
return values on exit at DEBUG level, with truncation tuned for the
wizard's payloads: lists of raw CSV rows, DataFrames, pipeline
dataclasses and Pydantic models.

Usage:
    from forecast_wizard.utils.logging_utils import log_io

    @log_io
    def classify(name, values):
        ...

    @log_io(log_result=False)
    async def analyze(request):
        ...
"""
import dataclasses
import functools
import inspect
import logging
import os
import time
import traceback
from typing import Any, Optional

MAX_STR_LENGTH = 200
MAX_LIST_ITEMS = 5
MAX_DICT_ITEMS = 10
MAX_REPR_LENGTH = 200
MAX_ROW_COLUMNS = 8

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for the application process."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)


class _Lazy:
    """Defers evaluation until __str__ is called by the logging framework.

    Truncation never runs when the record is filtered out by level.
    """

    __slots__ = ("_fn", "_args")

    def __init__(self, fn, *args):
        self._fn = fn
        self._args = args

    def __str__(self):
        return self._fn(*self._args)


def _is_row_list(value: Any) -> bool:
    return (
        isinstance(value, list)
        and len(value) > 0
        and all(isinstance(item, dict) for item in value[:MAX_LIST_ITEMS])
    )


def _summarize_rows(rows: list) -> str:
    cols = list(rows[0].keys())
    preview = cols[:MAX_ROW_COLUMNS]
    if len(cols) > MAX_ROW_COLUMNS:
        preview.append(f"...+{len(cols) - MAX_ROW_COLUMNS}")
    return f"rows(len={len(rows)}, cols={preview})"


def _truncate_value(value: Any, depth: int = 0) -> str:
    """Render a value compactly for a log line."""
    if depth > 2:
        return f"<{type(value).__name__}>"

    if value is None:
        return "None"

    try:
        import pandas as pd

        if isinstance(value, pd.DataFrame):
            cols = list(value.columns)
            col_preview = cols[:MAX_ROW_COLUMNS]
            if len(cols) > MAX_ROW_COLUMNS:
                col_preview.append(f"...+{len(cols) - MAX_ROW_COLUMNS}")
            return f"DataFrame(shape={value.shape}, cols={col_preview})"
        if isinstance(value, pd.Series):
            return f"Series(name={value.name}, len={len(value)}, dtype={value.dtype})"
    except ImportError:
        pass

    try:
        from pydantic import BaseModel

        if isinstance(value, BaseModel):
            return f"{type(value).__name__}({_truncate_dict(value.model_dump(), depth + 1)})"
    except ImportError:
        pass

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        shown = {}
        for f in dataclasses.fields(value)[:MAX_DICT_ITEMS]:
            shown[f.name] = getattr(value, f.name)
        return f"{type(value).__name__}({_truncate_dict(shown, depth + 1)})"

    if _is_row_list(value):
        return _summarize_rows(value)

    if isinstance(value, dict):
        if len(value) > MAX_DICT_ITEMS:
            sample = dict(list(value.items())[:MAX_DICT_ITEMS])
            return f"dict(len={len(value)}, sample={_truncate_dict(sample, depth + 1)})"
        return _truncate_dict(value, depth)

    if isinstance(value, (list, tuple)):
        type_name = type(value).__name__
        if len(value) > MAX_LIST_ITEMS:
            sample = [_truncate_value(item, depth + 1) for item in value[:MAX_LIST_ITEMS]]
            return f"{type_name}(len={len(value)}, first_{MAX_LIST_ITEMS}={sample})"
        return f"{type_name}([{', '.join(_truncate_value(item, depth + 1) for item in value)}])"

    if isinstance(value, str):
        if len(value) > MAX_STR_LENGTH:
            return f"str(len={len(value)}, preview='{value[:MAX_STR_LENGTH]}...')"
        return repr(value)

    if isinstance(value, bytes):
        return f"bytes(len={len(value)})"

    if isinstance(value, (set, frozenset)):
        return f"{type(value).__name__}(len={len(value)})"

    r = repr(value)
    if len(r) > MAX_REPR_LENGTH:
        return r[:MAX_REPR_LENGTH] + "..."
    return r


def _truncate_dict(d: dict, depth: int) -> str:
    return "{" + ", ".join(f"{k}={_truncate_value(v, depth + 1)}" for k, v in d.items()) + "}"


def _prepare_logged_params(func, args, kwargs):
    """Prepare args/kwargs for logging, stripping self/cls."""
    try:
        param_names = list(inspect.signature(func).parameters.keys())
    except (ValueError, TypeError):
        param_names = []

    start_idx = 1 if param_names and param_names[0] in ("self", "cls") else 0

    logged = []
    for i, arg in enumerate(args):
        if i < start_idx:
            continue
        name = param_names[i] if i < len(param_names) else f"arg{i}"
        logged.append(f"{name}={_Lazy(_truncate_value, arg)}")
    for k, v in kwargs.items():
        logged.append(f"{k}={_Lazy(_truncate_value, v)}")
    return logged


def _format_entry(func_qualname, logged):
    return f"[ENTER] {func_qualname}({', '.join(str(p) for p in logged)})"


def log_io(fn=None, *, log_args=True, log_result=True, log_level=logging.DEBUG):
    """Decorator that logs function inputs and outputs at DEBUG level.

    Works for sync and async callables. Exceptions are logged at ERROR
    with a shortened traceback and re-raised unchanged.

    Args:
        log_args: Whether to log function arguments (default True).
        log_result: Whether to log the return value (default True).
            When False, only the return type is logged.
        log_level: Log level for entry/exit messages (default DEBUG).
    """

    def decorator(func):
        func_logger = logging.getLogger(func.__module__)
        func_qualname = func.__qualname__

        def on_enter(args, kwargs):
            if not func_logger.isEnabledFor(log_level):
                return
            if log_args:
                logged = _prepare_logged_params(func, args, kwargs)
                func_logger.log(log_level, "%s", _Lazy(_format_entry, func_qualname, logged))
            else:
                func_logger.log(log_level, "[ENTER] %s()", func_qualname)

        def on_exit(result, start):
            if func_logger.isEnabledFor(log_level):
                shown = _Lazy(_truncate_value, result) if log_result else type(result).__name__
                func_logger.log(
                    log_level,
                    "[EXIT]  %s -> %s (%.3fs)",
                    func_qualname,
                    shown,
                    time.perf_counter() - start,
                )

        def on_error(exc, start):
            func_logger.error(
                "[ERROR] %s raised %s: %s (%.3fs)\n%s",
                func_qualname,
                type(exc).__name__,
                str(exc)[:500],
                time.perf_counter() - start,
                traceback.format_exc()[-1000:],
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                on_enter(args, kwargs)
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    on_error(e, start)
                    raise
                on_exit(result, start)
                return result

            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            on_enter(args, kwargs)
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                on_error(e, start)
                raise
            on_exit(result, start)
            return result

        return sync_wrapper

    if fn is not None:
        return decorator(fn)
    return decorator


def log_route_io_middleware(app):
    """FastAPI middleware that logs HTTP request/response metadata at DEBUG level."""

    @app.middleware("http")
    async def _log_route_io(request, call_next):
        route_logger = logging.getLogger("forecast_wizard.routes")
        if not route_logger.isEnabledFor(logging.DEBUG):
            return await call_next(request)

        route_logger.debug(
            "[REQ] %s %s (content-length=%s, content-type=%s)",
            request.method,
            request.url.path,
            request.headers.get("content-length", "0"),
            request.headers.get("content-type", "none"),
        )
        start = time.perf_counter()
        response = await call_next(request)
        route_logger.debug(
            "[RES] %s %s -> %d (%.3fs)",
            request.method,
            request.url.path,
            response.status_code,
            time.perf_counter() - start,
        )
        return response
