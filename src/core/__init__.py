"""Domain models, accumulator and oracles."""
