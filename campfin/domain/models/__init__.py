"""Domain models: requests, response envelopes and the error taxonomy."""
