"""Filesystem adapters for .qf containers."""
