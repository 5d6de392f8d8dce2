"""Command-line client for the stock tracker API."""
