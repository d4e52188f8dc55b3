"""
Rudimentary type [re-]definitions for the stdlib types which are generic
in the type-sheds, but not subscriptable at runtime.

Plus some common plain type definitions used across the codebase.
"""
import logging
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
else:
    LoggerAdapter = logging.LoggerAdapter

# Either a module logger or a per-object adapter; the code never relies on more.
Logger = Union[logging.Logger, LoggerAdapter]
