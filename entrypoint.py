"""Backend entrypoint: starts uvicorn with host and port from the environment."""
import os
import uvicorn

# Import the app object directly; uvicorn's string-based import is not needed
from portfolio_tracker.main import app


def main() -> None:
    host = os.environ.get("PORTFOLIO_HOST", "127.0.0.1")
    port = int(os.environ.get("PORTFOLIO_PORT", "8001"))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
