"""Parking app package.

Holds the parking spots partners put up for booking.
"""
