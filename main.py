"""
main.py: server launcher and entry point.

    python main.py

The API listens on http://127.0.0.1:8000 and the interactive docs open at
http://127.0.0.1:8000/docs.

This file does NOT contain application logic. See availability_engine/main.py
for the FastAPI application, service wiring and startup sequence.

Direct uvicorn usage (without browser auto-open):
    uvicorn availability_engine.main:app --reload
"""

from __future__ import annotations

import os
import threading
import time
import webbrowser

import uvicorn


HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
DOCS_URL = f"http://{HOST}:{PORT}/docs"


def _open_browser_after_startup(delay_seconds: float = 2.0) -> None:
    """Open the API docs once uvicorn has had time to create the schema."""
    time.sleep(delay_seconds)
    webbrowser.open(DOCS_URL)


def main() -> None:
    """Start the availability engine API."""
    print("=" * 60)
    print("  Availability & Dynamic Pricing Engine")
    print("=" * 60)
    print(f"  Server   : http://{HOST}:{PORT}")
    print(f"  API docs : {DOCS_URL}")
    print("=" * 60)
    print("  Press CTRL+C to stop\n")

    if os.getenv("OPEN_BROWSER", "1") == "1":
        threading.Thread(target=_open_browser_after_startup, daemon=True).start()

    uvicorn.run(
        "availability_engine.main:app",
        host=HOST,
        port=PORT,
        reload=os.getenv("RELOAD", "0") == "1",
        log_level="info",
    )


if __name__ == "__main__":
    main()
