"""
AppControl - application records for a multi-tenant platform control plane
HTTP server entry point
"""

import os

import uvicorn

from app.main import app


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    host = os.environ.get("APPCONTROL_HOST", "0.0.0.0")
    port = int(os.environ.get("APPCONTROL_PORT", "8080"))
    print("AppControl starting...")
    uvicorn.run(app, host=host, port=port)
