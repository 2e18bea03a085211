"""Shared helpers used across scmrelay packages."""
