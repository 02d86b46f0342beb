"""
Services Module
-------------
Orchestrates address enrichment: candidate selection, geocoding and persistence.
"""
