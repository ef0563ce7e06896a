"""Response body parsing."""
