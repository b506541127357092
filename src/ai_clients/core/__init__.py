"""Core configuration and exceptions."""
