"""Configuration, paths, invocation model and errors."""
