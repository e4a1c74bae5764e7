"""Core configuration, security and application wiring."""
