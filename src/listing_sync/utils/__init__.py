from .retry import RetryPolicy, backoff_delay, retry_rate_limited

__all__ = ["RetryPolicy", "backoff_delay", "retry_rate_limited"]
