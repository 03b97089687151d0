#!/usr/bin/env python3
"""
Server entrypoint: `lifelessons-server` or `python -m lifelessons.run`.
"""
import sys

from lifelessons.core.config import settings


def main() -> None:
    import uvicorn

    print(f"[lifelessons] Serving on http://{settings.HOST}:{settings.PORT}")
    try:
        uvicorn.run(
            "lifelessons.main:app",
            host=settings.HOST,
            port=settings.PORT,
            reload=False,
            log_level="info",
            access_log=settings.ENV.lower() != "production",
        )
    except KeyboardInterrupt:
        print("\n[lifelessons] Shutting down...")
        sys.exit(0)


if __name__ == "__main__":
    main()
