"""Core data model: wire events and contact profile helpers."""
