"""Payments app package.

This app contains the payment records attached to bookings together
with their audit trail. Refunds issued on booking cancellation are
recorded here.
"""
