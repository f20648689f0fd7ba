"""Command line entry point for the concurrent process controller."""
