"""Command-line interface for agentic-did."""
