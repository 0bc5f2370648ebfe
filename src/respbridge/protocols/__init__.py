"""Protocol layer — transports that carry prepared requests."""
