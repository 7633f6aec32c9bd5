"""Command-line tool for manually producing to and consuming from a Kafka topic."""

__version__ = "0.1.0"
