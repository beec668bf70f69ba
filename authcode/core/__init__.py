"""Configuration, errors, time and database plumbing."""
