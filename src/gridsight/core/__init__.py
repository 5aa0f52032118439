"""Core services: configuration, logging, errors and file watching."""
