"""Listings app package.

This app encapsulates listings offered for rent, the listing types that
drive their booking rules, and the availability windows declared by
owners.
"""
