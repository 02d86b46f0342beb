"""
Geocoding Module
--------------
Handles reverse geocoding operations to convert geographic coordinates to structured addresses.
Uses OpenStreetMap's Nominatim API behind a process-wide rate limiter.
"""
