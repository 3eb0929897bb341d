import pytest

from barter_engine.api import deps
from barter_engine.errors import NotFound


@pytest.fixture()
def logged_errors(monkeypatch):
    messages = []
    monkeypatch.setattr(deps.logger, "error", lambda message, **kwargs: messages.append(message))
    return messages


def test_domain_errors_pass_through_the_session_quietly(logged_errors):
    dependency = deps.get_db()
    next(dependency)
    with pytest.raises(NotFound):
        dependency.throw(NotFound("Offer", 1))
    assert logged_errors == []


def test_unexpected_errors_are_logged(logged_errors):
    dependency = deps.get_db()
    next(dependency)
    with pytest.raises(RuntimeError):
        dependency.throw(RuntimeError("connection dropped"))
    assert logged_errors == ["Database session error"]
