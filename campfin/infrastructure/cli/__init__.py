"""Console presentation of API results."""
