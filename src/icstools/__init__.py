"""
icstools - Calendar feed anonymizer and filter

A FastAPI-based service that fetches remote iCalendar feeds, rewrites them
according to a privacy policy (anonymize time slots, or drop matching
events) and serves the result.
"""

__version__ = "0.1.0"
