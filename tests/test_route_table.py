"""Tests for RouteTable and Response."""

import pytest

from cannedhttp import ConfigurationError, Response, RouteState, RouteTable


class TestResponse:
    """Test Response validation."""

    def test_defaults(self):
        response = Response(200)
        assert response.body == ""
        assert response.drop_connection is False

    def test_is_immutable(self):
        response = Response(200, "ok")
        with pytest.raises(AttributeError):
            response.status = 500  # type: ignore[misc]

    @pytest.mark.parametrize("status", [99, 100, 199, 1000, -1])
    def test_rejects_out_of_range_status(self, status):
        with pytest.raises(ConfigurationError, match="status out of range"):
            Response(status)

    @pytest.mark.parametrize("status", ["200", 200.0, True])
    def test_rejects_non_int_status(self, status):
        with pytest.raises(ConfigurationError, match="status must be an int"):
            Response(status)

    @pytest.mark.parametrize("status", [200, 599, 600, 799, 999])
    def test_accepts_any_three_digit_final_status(self, status):
        assert Response(status).status == status

    def test_rejects_bytes_body(self):
        with pytest.raises(ConfigurationError, match="body must be a str"):
            Response(200, b"raw")  # type: ignore[arg-type]

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            Response(42)


class TestRouteState:
    """Test cursor handling on a single route."""

    def test_advance_walks_responses_in_order(self):
        first, second = Response(200, "a"), Response(201, "b")
        state = RouteState(responses=(first, second))

        assert state.advance() is first
        assert state.cursor == 1
        assert state.advance() is second
        assert state.cursor == 2
        assert state.exhausted is True
        assert state.remaining == 0

    def test_advance_past_end_raises_and_keeps_cursor(self):
        state = RouteState(responses=(Response(200),))
        state.advance()

        with pytest.raises(IndexError):
            state.advance()
        assert state.cursor == 1

    def test_empty_sequence_is_exhausted_immediately(self):
        state = RouteState(responses=())
        assert state.exhausted is True


class TestRouteTable:
    """Test RouteTable construction and introspection."""

    def test_builds_state_per_key(self):
        table = RouteTable({
            "/a": [Response(200, "a")],
            "/b?x=1": (Response(200), Response(204)),
        })

        assert len(table) == 2
        assert "/a" in table
        assert "/b?x=1" in table
        assert "/b" not in table
        assert sorted(table) == ["/a", "/b?x=1"]
        assert table.remaining("/b?x=1") == 2
        assert table.call_count("/a") == 0

    def test_accepts_generators(self):
        table = RouteTable({"/gen": (Response(200, str(i)) for i in range(3))})
        state = table.get("/gen")
        assert state is not None
        assert [r.body for r in state.responses] == ["0", "1", "2"]

    def test_empty_table(self):
        table = RouteTable()
        assert len(table) == 0
        assert table.get("/") is None
        assert table.keys() == []

    def test_keys_are_not_normalized(self):
        table = RouteTable({"/a/": [Response(200)], "/q?b=2&a=1": [Response(200)]})
        assert table.get("/a") is None
        assert table.get("/q?a=1&b=2") is None

    @pytest.mark.parametrize("key", ["", "relative", "?x=1", 5])
    def test_rejects_bad_keys(self, key):
        with pytest.raises(ConfigurationError, match="route key"):
            RouteTable({key: [Response(200)]})

    def test_rejects_non_response_items(self):
        with pytest.raises(ConfigurationError, match="expected Response"):
            RouteTable({"/a": [(200, "body")]})  # type: ignore[list-item]

    def test_call_count_unknown_key(self):
        with pytest.raises(KeyError):
            RouteTable().call_count("/missing")

    def test_configuration_is_copied(self):
        responses = [Response(200)]
        table = RouteTable({"/a": responses})
        responses.append(Response(500))
        assert table.remaining("/a") == 1
