from conftest import make_drink

from services import result_cache


def _ranked(count):
    return [make_drink(f"drink-{idx}", 100 - idx, ("rum-001", "rum")) for idx in range(count)]


def test_take_page_consumes_in_rank_order():
    result_cache.store(1, _ranked(3))

    assert [drink.id for drink in result_cache.take_page(1, 2)] == ["drink-0", "drink-1"]
    assert result_cache.count(1) == 1
    assert [drink.id for drink in result_cache.take_page(1, 2)] == ["drink-2"]
    assert result_cache.take_page(1, 2) == []


def test_store_replaces_previous_results():
    result_cache.store(1, _ranked(3))
    replacement = [make_drink("fresh", 10, ("gin-1", "gin"))]

    result_cache.store(1, replacement)

    assert result_cache.count(1) == 1
    assert result_cache.take_page(1, 5) == replacement


def test_store_empty_clears_chat():
    result_cache.store(1, _ranked(2))
    result_cache.store(1, [])
    assert result_cache.count(1) == 0


def test_chats_are_isolated():
    result_cache.store(1, _ranked(2))
    result_cache.store(2, [make_drink("other", 1, ("gin-1", "gin"))])

    result_cache.drop(1)

    assert result_cache.count(1) == 0
    assert [drink.id for drink in result_cache.take_page(2, 1)] == ["other"]


def test_round_trip_preserves_drink_fields():
    drink = make_drink("daiquiri", 70, ("rum-001", "rum"), ("lime-002", "fruits"))
    result_cache.store(5, [drink])

    assert result_cache.take_page(5, 1) == [drink]


def test_claimed_page_is_replayed_for_the_same_key():
    result_cache.store(1, _ranked(3))

    first = result_cache.take_page(1, 1, claim_key="upd-10")
    again = result_cache.take_page(1, 1, claim_key="upd-10")
    following = result_cache.take_page(1, 1, claim_key="upd-11")

    assert [drink.id for drink in first] == ["drink-0"]
    assert again == first
    assert [drink.id for drink in following] == ["drink-1"]
    assert result_cache.count(1) == 1


def test_non_positive_page_size_takes_nothing():
    result_cache.store(1, _ranked(1))
    assert result_cache.take_page(1, 0) == []
    assert result_cache.count(1) == 1
