"""Booking domain services: slot availability, admission, confirmation and listings."""
