"""Wrappers around the external pbuilder tool."""
