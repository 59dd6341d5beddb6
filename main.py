"""Value Tracker: standalone server launcher."""

import argparse

import uvicorn

from valuetracker import config


def main():
    parser = argparse.ArgumentParser(description="Value Tracker standalone server")
    parser.add_argument("--host", default=config.HOST,
                        help=f"Bind address (default: {config.HOST})")
    parser.add_argument("--port", type=int, default=config.PORT,
                        help=f"Port (default: {config.PORT})")
    parser.add_argument("--reload", action="store_true",
                        help="Restart on code changes")
    args = parser.parse_args()

    print(f"Starting Value Tracker on http://{args.host}:{args.port}{config.API_PREFIX} ...")
    print("Databases are written to ./db/")
    uvicorn.run(
        "valuetracker.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
