"""AI prioritization: request building, response validation, merge into the store."""
