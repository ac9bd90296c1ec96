"""Scheduling app package.

Owns bookable sessions and the capacity-safe reservation procedure: every
spot taken or released goes through ``reservations`` under a row lock on
the session.
"""
