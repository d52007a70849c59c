"""Bookings app package.

This app encapsulates the booking lifecycle: creation with partner
availability and overlap checks, client cancellation with refund, the
status transition table and the periodic sweep that cancels pending
bookings left unpaid. Check-and-insert is serialised per partner by
locking the partner row inside a database transaction.
"""
