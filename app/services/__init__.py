"""Services package — all business logic lives here, never in routers.

Files:
  applications.py   — bazaar application lifecycle (apply, approve, reject, cancel, views)
  attendees.py      — attendee list and ID-document updates
  payments.py       — participation-fee payment intents, finalization, overdue sweep, webhook
  qr_codes.py       — visitor QR pass issuing, rendering and verification
  booth_window.py   — booth start/end resolution
  fees.py           — participation fee pricing
  currency.py       — minor units and display formatting
  gateway.py        — card-payment gateway client (httpx)
  storage.py        — ID-document file storage
  notifications.py  — fire-and-forget notification dispatch
  vendor.py         — vendor profile and verification

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in services. No FastAPI imports in services.
"""
