"""Bookings app package.

Holds the booking model, the refund policy and the cancellation flow.
Spots are taken and released only through ``apps.scheduling.reservations``;
bookings become confirmed only through the payment webhook.
"""
