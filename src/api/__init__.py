"""
API Module
---------
Provides RESTful API endpoints for address enrichment using FastAPI.
Features include:
- Enriching places that are missing street or city information
- Listing places that still need an address
- Proxying reverse geocoding requests to Nominatim
- Looking up a normalized address for a coordinate pair
"""
