# Services package init
"""
Archives Transfer Service — Services Layer
============================================

Service Inventory:
    - UploadService: Reassembles whole and chunked uploads on disk
    - ReferenceService: Genre listing and store health probe
"""
