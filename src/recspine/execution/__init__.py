"""Retry strategies for calls to external stores."""

from .retry import ExponentialBackoff, NoRetry, RetryContext, RetryStrategy

__all__ = ["ExponentialBackoff", "NoRetry", "RetryContext", "RetryStrategy"]
