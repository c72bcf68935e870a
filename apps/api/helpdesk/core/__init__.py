"""Core infrastructure: configuration, security, authorization rules."""
