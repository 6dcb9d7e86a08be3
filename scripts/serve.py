from __future__ import annotations

import argparse

import uvicorn

from formrelay.apps.api.main import create_app
from formrelay.core.config import get_settings


def main() -> None:
    # Run the API with env-driven settings; flags override host/port for local runs.
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Run the formrelay API server")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--forms-config", default=None, help="Path to the forms YAML file")
    args = parser.parse_args()

    if args.forms_config:
        settings = settings.model_copy(update={"forms_config_path": args.forms_config})
    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
