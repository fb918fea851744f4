"""HTTP layer. Routers parse requests, resolve the Principal and hand off to services.

  v1/  — mounted under /api/v1 by app.main
"""
