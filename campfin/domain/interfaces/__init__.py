"""Domain Interfaces (Abstract Base Classes).

Define contracts for infrastructure components (HTTP transport, user
interface) to ensure loose coupling.
"""
