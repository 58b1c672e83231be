"""Launch the HTTP API for one repository with uvicorn."""
from __future__ import annotations

from commit_trail.config import Settings
from commit_trail.logging_config import configure_logging


def launch(
    repo_path: str,
    settings: Settings | None = None,
    api_port: int = 8000,
    log_level: str | None = None,
) -> None:
    import uvicorn

    from commit_trail.application.use_cases import open_repository
    from commit_trail.web.api import app

    configure_logging(log_level)

    # Fail on a bad path before the server starts.
    app.state.coordinator = open_repository(repo_path, settings)

    print(f"API server:  http://localhost:{api_port}")
    print(f"Repository:  {repo_path}")
    print()
    uvicorn.run(app, host="127.0.0.1", port=api_port, log_level="warning", log_config=None)
