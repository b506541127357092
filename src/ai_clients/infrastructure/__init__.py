"""Infrastructure: vendor adapters, resilience, logging and monitoring."""
