"""Booking and session lifecycle services."""
