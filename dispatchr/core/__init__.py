"""Errors, constants and settings shared by every Dispatchr component."""
