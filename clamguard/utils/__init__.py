"""Utility helpers for ClamGuard."""
