"""Sequential (retrying) and concurrent request dispatch."""

from .retry import RetryDispatcher
from .concurrent import ConcurrentDispatcher

__all__ = ["RetryDispatcher", "ConcurrentDispatcher"]
