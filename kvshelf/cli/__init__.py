"""Command line interface for kvshelf."""
