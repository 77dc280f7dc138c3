"""Streak tracking domain."""
