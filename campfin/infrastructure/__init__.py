"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (the HTTP API, configuration
files, the console) by implementing the interfaces defined in the domain
layer. Also includes the resilience services around outbound calls.
"""
