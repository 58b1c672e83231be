import pytest

from commit_trail.config import Settings
from commit_trail.domain.errors import InvalidRepository
from commit_trail.web import server
from commit_trail.web.api import app


@pytest.fixture(autouse=True)
def _reset_state():
    yield
    app.state.coordinator = None


@pytest.fixture
def logging_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(server, "configure_logging", lambda level=None: calls.append(level))
    return calls


def test_launch_runs_uvicorn(git_repo_with_history, tmp_path, monkeypatch, capsys, logging_calls):
    import uvicorn

    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda application, **kwargs: calls.append((application, kwargs)))

    server.launch(str(git_repo_with_history), Settings(home=tmp_path / "home"), api_port=8123)

    assert len(calls) == 1
    application, kwargs = calls[0]
    assert application is app
    assert kwargs["port"] == 8123
    assert kwargs["host"] == "127.0.0.1"
    assert app.state.coordinator.name == "repo"
    assert "http://localhost:8123" in capsys.readouterr().out


def test_launch_rejects_bad_path_before_serving(tmp_path, monkeypatch, logging_calls):
    import uvicorn

    monkeypatch.setattr(uvicorn, "run", lambda *a, **kw: pytest.fail("server should not start"))
    with pytest.raises(InvalidRepository):
        server.launch(str(tmp_path / "missing"), Settings(home=tmp_path / "home"))


def test_launch_configures_logging(git_repo_with_history, tmp_path, monkeypatch, logging_calls):
    import uvicorn

    monkeypatch.setattr(uvicorn, "run", lambda application, **kwargs: None)
    server.launch(str(git_repo_with_history), Settings(home=tmp_path / "home"), log_level="debug")
    assert logging_calls == ["debug"]
