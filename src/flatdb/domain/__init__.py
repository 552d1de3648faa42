"""Domain layer - records, addresses, errors and the query/mutation engines."""
