"""Core Business Logic Module

This module provides the webhook sync pipeline, independent of the HTTP
framework.

Architecture:
    - Pure Python (no Flask dependencies in core logic)
    - Testable without HTTP mocking
    - Reusable across interfaces (webhook endpoint, ops CLI)

Module Structure:
    - verification.py  : Delivery authentication (Svix signatures, replay window)
    - events.py        : Event envelope parsing (EventKind, AccountPayload)
    - models.py        : UserRecord ORM model
    - store.py         : SQLAlchemy user store keyed by external identity
    - sync_service.py  : Idempotent create/update/delete with field defaults
    - publisher.py     : Metadata write-back to the identity provider
    - dispatcher.py    : Orchestration and response mapping
    - audit.py         : Signed JSONL audit trail
    - identity/        : Identity provider Backend API client
    - exceptions.py    : Error taxonomy with HTTP status mapping

Usage Pattern:
    These modules are NOT auto-imported; import explicitly when needed:
        from usersync.core.dispatcher import WebhookDispatcher
        from usersync.core.store import UserStore
"""
