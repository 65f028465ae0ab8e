"""
Inventory Insights client

A Python client for the Inventory Insights inventory-counting service.
Handles sign-in and tenant registration against the hosted identity provider,
keeps the authenticated session on disk, ships audit events to the backend API
and renders a filterable audit trail.
"""

__version__ = "1.0.0"
__author__ = "Inventory Insights Team"
