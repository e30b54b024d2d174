"""Core library: task store, task domain, configuration and bootstrap."""
