"""Test fixture package for help-locator.

Contains fixtures for:
- Key-value stores driven by a controllable clock
- Scripted geocoding providers
- The API application and its HTTP client
"""
