from graphextract.queries import (
    get_endpoint_id,
    get_query_for_endpoint,
    get_query_variants,
)

AVAX = "9cT3GzNxcLWFXGAgqdJsydZkh9ajKEXn4hKvkRLJHgwv"
DEX = "9EAxYE17Cc478uzFXRbM7PVnMUSsgb99XZiGxodbtpbk"
OTHER = "EMnAvnfc1fwGSU6ToqYJCeEkXmSgmDmhwtyaha1tM5oi"
UNKNOWN = "ZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZZ"


def test_variant_query_types():
    assert set(get_query_variants()) == {
        "tokens",
        "transactions",
        "factories",
        "swaps",
        "_meta",
        "vaults",
        "withdraws",
        "burns",
        "accounts",
        "pools",
        "skimFees",
    }


def test_variants_are_a_copy():
    variants = get_query_variants()
    variants["tokens"].clear()
    del variants["pools"]
    fresh = get_query_variants()
    assert "default" in fresh["tokens"]
    assert "pools" in fresh


def test_exact_endpoint_match():
    query = get_query_for_endpoint(AVAX, "tokens")
    assert query == get_query_variants()["tokens"][AVAX]
    assert "isNative" in query


def test_partial_endpoint_match():
    query = get_query_for_endpoint(AVAX[:8], "tokens")
    assert query == get_query_variants()["tokens"][AVAX]


def test_endpoint_containing_variant_key():
    query = get_query_for_endpoint("prefix-" + DEX + "-suffix", "swaps")
    assert query == get_query_variants()["swaps"][DEX]


def test_default_fallback():
    assert get_query_for_endpoint(UNKNOWN, "tokens") == get_query_variants()["tokens"]["default"]
    assert (
        get_query_for_endpoint(UNKNOWN, "transactions")
        == get_query_variants()["transactions"]["default"]
    )


def test_no_default_gives_empty():
    assert get_query_for_endpoint(UNKNOWN, "factories") == ""
    assert get_query_for_endpoint(AVAX, "factories") == ""


def test_unknown_query_type_gives_empty():
    assert get_query_for_endpoint(AVAX, "nonexistent") == ""


def test_meta_queries_request_deployment():
    for endpoint in (AVAX, DEX, OTHER):
        query = get_query_for_endpoint(endpoint, "_meta")
        assert "deployment" in query
        assert "hasIndexingErrors" in query


def test_endpoint_id_shortens():
    assert get_endpoint_id(AVAX) == "9cT3GzNx"


def test_endpoint_id_keeps_short_values():
    assert get_endpoint_id("abc") == "abc"
    assert get_endpoint_id("12345678") == "12345678"