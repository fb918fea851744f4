"""v1 router package — all /api/v1/* endpoints live here.

Files:
  vendors.py              — vendor profile and verification
  vendor_applications.py  — apply, attendees, payment, cancel (vendor side)
  events.py               — events-office review of applications
  payments.py             — overdue sweep and gateway webhook
  visitor_passes.py       — visitor QR pass image and verification

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to app/services/.
"""
