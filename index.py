"""
Main entry point for the application.
"""

import os
import subprocess
import sys

from dotenv import load_dotenv

from imageserver.config import ConfigError, load_settings

load_dotenv()


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as exc:
        for name in exc.missing:
            print(f"Missing environment variable: {name}", file=sys.stderr)
        if not exc.missing:
            print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    # Normalize DEV for child processes that read the environment directly.
    os.environ["DEV"] = "true" if settings.dev else "false"

    try:
        print(f"Starting on {settings.host}:{settings.port} (dev={settings.dev})")
        subprocess.run(
            [
                "uvicorn",
                "imageserver.server:build_app",
                "--factory",
                *(["--reload"] if settings.dev else []),
                "--host",
                settings.host,
                "--port",
                str(settings.port),
            ],
            cwd=os.getcwd(),
            check=True,
        )
    except KeyboardInterrupt:
        print("Server stopped by user.")
    except Exception as e:
        print(f"An error occurred while starting the server: {e}")
        raise
    return 0


if __name__ == "__main__":
    sys.exit(main())
