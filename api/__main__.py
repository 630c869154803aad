"""
Development server for the account session API.

Usage:
  python -m api
  python -m api --config production --port 8080

Production deployments should serve create_app() from a WSGI server instead.
"""
import argparse
import os

from . import create_app


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="python -m api", description="Run the account session API.")
    parser.add_argument("--config", default=None, help="dev, production or testing (default: $APP_ENV)")
    parser.add_argument("--host", default=os.getenv("FLASK_RUN_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("FLASK_RUN_PORT", "5000")))
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    app = create_app(args.config)
    app.run(host=args.host, port=args.port, debug=app.config["DEBUG"])


if __name__ == "__main__":
    main()
