"""Command line interface for shopledger."""
