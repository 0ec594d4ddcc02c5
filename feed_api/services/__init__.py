# Services package init
"""
Feed API — Services Layer
===========================

Service Inventory:
    - FileService: image validation, storage, path resolution and deletion
    - PostService: list/get/create/update/delete posts, schedules image deletion

Services receive the database session (and BackgroundTasks where files are
deleted) per call and keep no per-request state.
"""
