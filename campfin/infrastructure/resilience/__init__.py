"""API Resilience Implementations.

Contains the concurrency gate, HTTP status classification with the fixed-delay
retry policy, and the request dispatcher built on both.
Bounded Context: API Resilience
"""
