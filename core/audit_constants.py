"""
Canonical audit event type strings for application writes.
"""

EVENT_APP_CREATE = "audit.app.create"
EVENT_APP_UPDATE = "audit.app.update"
EVENT_APP_DELETE_REQUEST = "audit.app.delete-request"
EVENT_APP_DROPLET_MAPPED = "audit.app.droplet.mapped"

__all__ = [
    "EVENT_APP_CREATE",
    "EVENT_APP_UPDATE",
    "EVENT_APP_DELETE_REQUEST",
    "EVENT_APP_DROPLET_MAPPED",
]
