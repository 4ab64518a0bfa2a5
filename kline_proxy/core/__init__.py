"""Configuration, logging and exceptions shared across the proxy."""
