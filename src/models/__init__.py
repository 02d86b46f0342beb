"""
Data Models Module
----------------
Contains Pydantic models for data validation and serialization.
Defines place records, normalized address components and enrichment reports.
"""
