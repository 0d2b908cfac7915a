# Routes package init
"""
Caisse Backend — API Routes Package
=====================================

Route Inventory:
    - health.py:  GET  /                     (liveness text)
                  GET  /health               (database probe)
    - auth.py:    POST /api/signup           (public client registration)
                  POST /api/login            (credentials → bearer token)
    - users.py:   GET/POST /api/users, DELETE /api/users/{id}   (admin)
    - sales.py:   POST/GET /api/sales, DELETE /api/sales/{id}

Routes are THIN: extract the request data, call a service, wrap the
result in an `{ok: true}` envelope. Access control lives in
app.dependencies; business rules live in app.services.
"""
