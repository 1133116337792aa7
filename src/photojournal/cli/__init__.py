"""Command line tools for photojournal."""
