"""Booking data models."""
