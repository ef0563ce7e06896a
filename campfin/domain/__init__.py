"""Domain Layer: value objects, events and interfaces of the client."""
