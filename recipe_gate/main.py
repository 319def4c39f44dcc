import uvicorn

from recipe_gate.core.app_factory import create_app

app = create_app()


def run() -> None:
    """Serve the app with Uvicorn (``recipe-gate`` console script)."""
    uvicorn.run(
        "recipe_gate.main:app",
        host="0.0.0.0",
        port=8000,
        access_log=False,
    )


if __name__ == "__main__":
    run()
