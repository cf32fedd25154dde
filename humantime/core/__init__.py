"""Block queries, aggregation and session tracking."""
