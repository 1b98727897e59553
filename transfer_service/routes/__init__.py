# Routes package init
"""
Archives Transfer Service — API Routes Package
================================================

Route Inventory:
    - submissions.py:  GET  /identifier   (new submission token)
                       GET  /genres       (reference genres)
    - upload.py:       POST /upload       (whole file or one chunk)
    - health.py:       GET  /version      (build version)
                       GET  /healthcheck  (store reachability)

Routes stay thin: they read the request, call a service from the
ServiceContext, and shape the response.
"""
