"""Shared configuration, path and kernel source helpers."""
