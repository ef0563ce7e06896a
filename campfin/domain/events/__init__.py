"""Domain Event definitions.

Represents significant occurrences while talking to the API that other parts
of the system might react to (logging, metrics, tests).
"""
