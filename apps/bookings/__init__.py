"""Bookings app package.

This app encapsulates the booking domain: the availability engines that
decide whether a listing can take a new reservation, the booking model
and its lifecycle (acceptance, cancellation, hold expiry). Bookings of
one listing are admitted one at a time under the listing row lock.
"""
