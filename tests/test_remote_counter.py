"""Unit tests for the remote counter client."""

from unittest.mock import Mock

import pytest
import requests

from src.counter import CounterAlreadyExists, CounterSourceUnavailable
from src.remote_counter import RemoteCounterSource


def make_response(status_code=200, body=None):
    response = Mock()
    response.status_code = status_code
    response.text = str(body)
    response.json.return_value = body
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} error"
        )
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def source(session):
    return RemoteCounterSource("https://counter.example.com/", session=session)


class TestRemoteCounterSource:
    """Tests for RemoteCounterSource HTTP mapping."""

    def test_strips_trailing_slash(self, source):
        assert source.base_url == "https://counter.example.com"

    def test_get_existing_counter(self, source, session):
        session.request.return_value = make_response(
            body={"seed": "lytnit", "iteration": 7}
        )

        assert source.get("lytnit") == 7
        session.request.assert_called_once_with(
            "GET",
            "https://counter.example.com/counters/lytnit",
            json=None,
            timeout=5,
        )

    def test_get_missing_counter_returns_none(self, source, session):
        session.request.return_value = make_response(404, {"error": "not found"})

        assert source.get("lytnit") is None

    def test_create_posts_initial_value(self, source, session):
        session.request.return_value = make_response(
            201, {"seed": "lytnit", "iteration": 1}
        )

        assert source.create("lytnit", 1) == 1
        session.request.assert_called_once_with(
            "POST",
            "https://counter.example.com/counters",
            json={"seed": "lytnit", "iteration": 1},
            timeout=5,
        )

    def test_update_puts_new_value(self, source, session):
        session.request.return_value = make_response(body={"iteration": 12})

        assert source.update("lytnit", 12) == 12
        session.request.assert_called_once_with(
            "PUT",
            "https://counter.example.com/counters/lytnit",
            json={"iteration": 12},
            timeout=5,
        )

    def test_next_creates_when_missing(self, source, session):
        session.request.side_effect = [
            make_response(404, {}),
            make_response(201, {"seed": "lytnit", "iteration": 1}),
        ]

        assert source.next("lytnit") == 1
        methods = [call.args[0] for call in session.request.call_args_list]
        assert methods == ["GET", "POST"]

    def test_create_conflict_raises_already_exists(self, source, session):
        session.request.return_value = make_response(409, {"error": "exists"})

        with pytest.raises(CounterAlreadyExists):
            source.create("lytnit", 1)

    def test_next_recovers_from_concurrent_create(self, source, session):
        session.request.side_effect = [
            make_response(404, {}),
            make_response(409, {"error": "exists"}),
            make_response(body={"iteration": 1}),
            make_response(body={"iteration": 2}),
        ]

        assert source.next("lytnit") == 2
        methods = [call.args[0] for call in session.request.call_args_list]
        assert methods == ["GET", "POST", "GET", "PUT"]
        assert session.request.call_args_list[3].kwargs["json"] == {"iteration": 2}

    def test_next_increments_existing(self, source, session):
        session.request.side_effect = [
            make_response(body={"iteration": 41}),
            make_response(body={"iteration": 42}),
        ]

        assert source.next("lytnit") == 42
        assert session.request.call_args_list[1].kwargs["json"] == {"iteration": 42}

    def test_seed_is_url_quoted(self, source, session):
        session.request.return_value = make_response(body={"iteration": 1})

        source.get("a/b c")

        assert (
            session.request.call_args.args[1]
            == "https://counter.example.com/counters/a%2Fb%20c"
        )

    def test_connection_error_raises_unavailable(self, source, session):
        session.request.side_effect = requests.ConnectionError("Connection refused")

        with pytest.raises(CounterSourceUnavailable, match="Connection refused"):
            source.next("lytnit")

    def test_server_error_raises_unavailable(self, source, session):
        session.request.return_value = make_response(500, {"error": "boom"})

        with pytest.raises(CounterSourceUnavailable):
            source.get("lytnit")

    def test_invalid_json_raises_unavailable(self, source, session):
        response = make_response(body=None)
        response.json.side_effect = ValueError("Expecting value")
        session.request.return_value = response

        with pytest.raises(CounterSourceUnavailable, match="Invalid"):
            source.get("lytnit")

    def test_missing_iteration_raises_unavailable(self, source, session):
        session.request.return_value = make_response(body={"seed": "lytnit"})

        with pytest.raises(CounterSourceUnavailable, match="missing iteration"):
            source.get("lytnit")

    def test_non_integer_iteration_raises_unavailable(self, source, session):
        session.request.return_value = make_response(body={"iteration": "7"})

        with pytest.raises(CounterSourceUnavailable, match="non-integer"):
            source.get("lytnit")

    def test_default_session_created(self):
        source = RemoteCounterSource("http://localhost:9000")
        assert isinstance(source.session, requests.Session)
