from unittest.mock import MagicMock, patch

import pytest
import requests

from services.addb_client import AddbClient, parse_drink
from services.errors import ApiError, FailureKind, FatalError, TransientError, classify_failure


def _response(status=200, body=None, reason="OK"):
    response = MagicMock()
    response.status_code = status
    response.reason = reason
    response.text = "" if body is None else str(body)
    response.json.return_value = body
    return response


def _client():
    return AddbClient("secret", api_root="https://addb.example/", timeout_seconds=3)


DRINK = {
    "id": "mojito",
    "name": "Mojito",
    "rating": 88,
    "descriptionPlain": "Muddle mint, add rum.",
    "ingredients": [
        {"id": "white-rum", "type": "rum", "textPlain": "4 cl White Rum"},
        {"id": "mint-leaf", "type": "spices-herbs", "textPlain": "Mint leaves"},
    ],
    "videos": [{"type": "assets", "video": "x"}, {"type": "youtube", "video": "abc123"}],
}


def test_parse_drink_maps_catalog_fields():
    drink = parse_drink(DRINK)

    assert drink.story == "Muddle mint, add rum."
    assert [(item.id, item.category, item.text) for item in drink.ingredients] == [
        ("white-rum", "rum", "4 cl White Rum"),
        ("mint-leaf", "spices-herbs", "Mint leaves"),
    ]
    assert drink.video_url == "http://www.youtube.com/watch?v=abc123"


def test_find_drinks_with_any_builds_or_path():
    client = _client()
    with patch.object(client._session, "get", return_value=_response(body={"result": [DRINK]})) as get:
        drinks = client.find_drinks_with_any(["white-rum", "lime"])

    assert [drink.id for drink in drinks] == ["mojito"]
    url = get.call_args.args[0]
    params = get.call_args.kwargs["params"]
    assert url == "https://addb.example/drinks/with/white-rum/or/lime"
    assert params["apiKey"] == "secret"
    assert params["pageSize"] == 100
    assert get.call_args.kwargs["timeout"] == 3


def test_find_drinks_without_codes_skips_request():
    client = _client()
    with patch.object(client._session, "get") as get:
        assert client.find_drinks_with_any([]) == []
    get.assert_not_called()


def test_search_ingredients_returns_page_with_total():
    client = _client()
    body = {"result": [{"id": "lime", "name": "Lime", "type": "fruits", "description": "Green"}], "totalResult": 14}
    with patch.object(client._session, "get", return_value=_response(body=body)) as get:
        page = client.search_ingredients("li me", 10, 5)

    assert page.total == 14
    assert page.items[0].name == "Lime"
    assert get.call_args.args[0].endswith("/quickSearch/ingredients/li%20me")
    assert get.call_args.kwargs["params"]["start"] == 10
    assert get.call_args.kwargs["params"]["pageSize"] == 5


def test_get_ingredient_accepts_result_envelope():
    client = _client()
    body = {"result": [{"id": "white-rum", "name": "White Rum", "type": "rum"}]}
    with patch.object(client._session, "get", return_value=_response(body=body)):
        assert client.get_ingredient("white-rum").name == "White Rum"

    with patch.object(client._session, "get", return_value=_response(body={"result": []})):
        with pytest.raises(FatalError):
            client.get_ingredient("nothing")


def test_client_errors_are_fatal_and_server_errors_retry():
    client = _client()
    with patch.object(client._session, "get", return_value=_response(404, {"error": "nope"}, "Not Found")):
        with pytest.raises(ApiError) as not_found:
            client.search_drinks("x", 0, 10)
    with patch.object(client._session, "get", return_value=_response(503, None, "Unavailable")):
        with pytest.raises(ApiError) as unavailable:
            client.search_drinks("x", 0, 10)

    assert classify_failure(not_found.value) is FailureKind.FATAL
    assert classify_failure(unavailable.value) is FailureKind.RETRY
    assert classify_failure(ApiError(429, "Too Many Requests")) is FailureKind.RETRY


def test_network_failures_become_transient():
    client = _client()
    with patch.object(client._session, "get", side_effect=requests.Timeout("slow")):
        with pytest.raises(TransientError):
            client.search_drinks("x", 0, 10)
    with patch.object(client._session, "get", side_effect=requests.ConnectionError("down")):
        with pytest.raises(TransientError):
            client.search_drinks("x", 0, 10)


def test_non_json_body_is_transient():
    client = _client()
    response = _response()
    response.json.side_effect = ValueError("not json")
    with patch.object(client._session, "get", return_value=response):
        with pytest.raises(TransientError):
            client.get_ingredient("white-rum")


def test_missing_api_key_is_rejected():
    with pytest.raises(ValueError):
        AddbClient("")
