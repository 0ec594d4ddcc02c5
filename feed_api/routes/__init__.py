# Routes package init
"""
Feed API — API Routes Package
===============================

Route Inventory:
    - posts.py:   GET/POST       /feed/posts
                  GET/PUT/DELETE /feed/posts/{post_id}
    - images.py:  GET            /images/{path}   (stored post images)
    - health.py:  GET            /health

Routes stay thin: they pull data out of the request, call a service and
let the global exception handlers format errors.
"""
