# Middleware package init
"""
Feed API — Middleware Package
===============================

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Request ID first so every later log line can carry it
    2. Logging wraps the rest to time the full request
    3. CORS answers preflight requests from browser clients of the feed
"""
