"""
Drug Check Service - Gemini-backed drug identification and prescription
verification API.
"""

__version__ = "0.1.0"
