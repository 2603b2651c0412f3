"""Shared configuration, environment and logging helpers."""
