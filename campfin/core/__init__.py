"""Core Application Layer: the API client and command orchestration.

Connects the domain layer with the infrastructure layer through interfaces.
Contains the endpoint client and the command handler used by the CLI.
"""
