"""Pydantic schemas package.

Folder intent:
  common.py       — CamelModel base + HealthResponse (all schemas inherit CamelModel)
  application.py  — Bazaar application, attendee, payment and visitor-pass schemas
  vendor.py       — Vendor profile schemas
"""
