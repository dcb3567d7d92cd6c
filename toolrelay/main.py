"""ASGI entry point.

    uvicorn toolrelay.main:app
"""

import uvicorn

from toolrelay.api.app import create_app

# Create the app instance for uvicorn
app = create_app()


def run() -> None:
    """Console script entry point."""
    settings = app.state.settings
    uvicorn.run(app, host=settings.api.host, port=settings.api.port, log_config=None)


if __name__ == "__main__":
    run()
