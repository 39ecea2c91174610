"""
Common building blocks shared by the classification engine.

This package contains reusable, domain-agnostic code:

- configuration loading (environment variables)
- retry/backoff helpers
- logging configuration
"""
