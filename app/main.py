"""
Spend Log API server.

Runs the FastAPI application with uvicorn:

    python -m app.main

Host, port and the storage backend come from the environment
(see spendlog.config).
"""

import uvicorn

from spendlog.api import create_app
from spendlog.config import get_settings, validate_all_settings


app = create_app()


def main() -> None:
    results = validate_all_settings()
    failed = [name for name, ok in results.items() if ok is False]
    if failed:
        details = "; ".join(str(results.get(f"{name}_error")) for name in failed)
        raise SystemExit(f"Invalid configuration ({', '.join(failed)}): {details}")

    settings = get_settings().app
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug_mode,
    )


if __name__ == "__main__":
    main()
