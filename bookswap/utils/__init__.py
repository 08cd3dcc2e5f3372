"""Validators and CLI output helpers."""
