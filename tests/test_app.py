import pytest
import requests

import app as app_module
import payloads
from fakes import FakeResponse


@pytest.fixture()
def client(monkeypatch):
    monkeypatch.setattr(app_module.limiter, "enabled", False, raising=False)
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


def _all_sources_up(fake_http):
    fake_http.add("pump.fun/coins", FakeResponse(payloads.PUMPFUN_COINS))
    fake_http.add("dex/search", FakeResponse(payloads.DEXSCREENER_SEARCH))
    fake_http.add("jup.ag/tokens", FakeResponse(payloads.JUPITER_TOKENS))


def test_health(client):
    resp = client.get("/")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "online"
    assert body["endpoints"]["aggregated"] == "/api/coins/aggregated"


def test_cors_header_present(client):
    resp = client.get("/", headers={"Origin": "https://frontend.example"})
    # older flask-cors sends "*", newer echoes the origin
    assert resp.headers.get("Access-Control-Allow-Origin") in ("*", "https://frontend.example")

###############################################################################
# /api/coins/aggregated
###############################################################################

def test_aggregated_merges_sources(client, fake_http):
    _all_sources_up(fake_http)

    resp = client.get("/api/coins/aggregated")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["sources"] == ["pumpfun", "dexscreener", "birdeye", "solanatracker", "jupiter"]
    by_key = {t["address"].lower(): t for t in body["tokens"]}
    assert sorted(by_key) == ["jupmint", "pumpmint111", "sharedmint"]
    assert body["count"] == 3
    # dexscreener knew more about the shared token than pump.fun did
    assert by_key["sharedmint"]["source"] == "dexscreener"
    assert by_key["sharedmint"]["volume24h"] == 1500.5
    assert "timestamp" in body


def test_aggregated_survives_one_failing_source(client, fake_http):
    _all_sources_up(fake_http)
    fake_http.add("pump.fun/coins", FakeResponse({"error": "down"}, status=502))

    resp = client.get("/api/coins/aggregated")

    assert resp.status_code == 200
    addresses = sorted(t["address"] for t in resp.get_json()["tokens"])
    assert addresses == ["JupMint", "sharedmint"]


def test_aggregated_all_sources_failed(client, fake_http):
    resp = client.get("/api/coins/aggregated")

    assert resp.status_code == 500
    body = resp.get_json()
    assert body["success"] is False
    assert body["error"] == "All sources failed"
    assert len(body["sources"]) == 5

###############################################################################
# /api/coins and /api/coin/<address>
###############################################################################

def test_coins_passthrough_from_pumpfun(client, fake_http):
    fake_http.add("pump.fun/coins", FakeResponse(payloads.PUMPFUN_COINS))

    resp = client.get("/api/coins?limit=5&offset=10")

    assert resp.status_code == 200
    assert resp.get_json() == payloads.PUMPFUN_COINS
    params = fake_http.calls[0]["params"]
    assert params["limit"] == 5
    assert params["offset"] == 10
    assert params["includeNsfw"] == "false"


def test_coins_falls_back_to_dexscreener(client, fake_http):
    fake_http.add("pump.fun/coins", FakeResponse({}, status=530))
    fake_http.add("dex/search", FakeResponse(payloads.DEXSCREENER_SEARCH))

    resp = client.get("/api/coins")

    assert resp.status_code == 200
    body = resp.get_json()
    assert [c["address"] for c in body] == ["sharedmint"]
    assert body[0]["source"] == "dexscreener"


def test_coins_both_sources_down(client, fake_http):
    resp = client.get("/api/coins")

    assert resp.status_code == 500
    body = resp.get_json()
    assert body["error"] == "Failed to fetch coins"
    assert "suggestion" in body


def test_coin_from_pumpfun(client, fake_http):
    fake_http.add("pump.fun/coins/", FakeResponse(payloads.PUMPFUN_COIN))

    resp = client.get("/api/coin/PumpMint111")

    assert resp.status_code == 200
    assert resp.get_json() == payloads.PUMPFUN_COIN
    assert fake_http.urls() == ["https://frontend-api.pump.fun/coins/PumpMint111"]


def test_coin_falls_back_to_solanatracker(client, fake_http):
    fake_http.add("pump.fun/coins/", FakeResponse({"message": "not found"}, status=404))
    fake_http.add("solanatracker.io/tokens/", FakeResponse(payloads.SOLANATRACKER_TOKEN))

    resp = client.get("/api/coin/TrackMint")

    assert resp.status_code == 200
    assert resp.get_json() == payloads.SOLANATRACKER_TOKEN
    assert fake_http.urls()[1].endswith("/tokens/TrackMint")


def test_coin_all_failed(client, fake_http):
    fake_http.add("pump.fun/coins/", requests.exceptions.Timeout("timed out"))

    resp = client.get("/api/coin/Nope")

    assert resp.status_code == 500
    body = resp.get_json()
    assert body["error"] == "Failed to fetch coin"
    assert body["message"]

###############################################################################
# Jupiter
###############################################################################

def test_quote_missing_fields(client, fake_http):
    resp = client.post("/api/jupiter/quote", json={"inputMint": "A"})

    assert resp.status_code == 400
    assert resp.get_json()["missing"] == ["outputMint", "amount"]
    assert fake_http.calls == []


def test_quote_bad_amount(client, fake_http):
    resp = client.post(
        "/api/jupiter/quote",
        json={"inputMint": "A", "outputMint": "B", "amount": "lots"},
    )
    assert resp.status_code == 400


def test_quote_passthrough(client, fake_http):
    fake_http.add("lite-api.jup.ag/swap/v1/quote", FakeResponse(payloads.JUPITER_QUOTE))

    resp = client.post(
        "/api/jupiter/quote",
        json={
            "inputMint": "So11111111111111111111111111111111111111112",
            "outputMint": "JupMint",
            "amount": "1000000",
            "slippageBps": 100,
        },
    )

    assert resp.status_code == 200
    assert resp.get_json() == payloads.JUPITER_QUOTE
    params = fake_http.calls[0]["params"]
    assert params["amount"] == 1000000
    assert params["slippageBps"] == 100


def test_quote_falls_back_to_second_host(client, fake_http):
    fake_http.add("lite-api.jup.ag/swap/v1/quote", FakeResponse({}, status=500))
    fake_http.add("quote-api.jup.ag/v6/quote", FakeResponse(payloads.JUPITER_QUOTE))

    resp = client.post(
        "/api/jupiter/quote",
        json={"inputMint": "A", "outputMint": "B", "amount": 1},
    )

    assert resp.status_code == 200
    assert "quote-api.jup.ag" in fake_http.urls()[1]
    assert fake_http.calls[0]["params"]["slippageBps"] == 50


def test_quote_upstream_failure(client, fake_http):
    resp = client.post(
        "/api/jupiter/quote",
        json={"inputMint": "A", "outputMint": "B", "amount": 1},
    )

    assert resp.status_code == 500
    assert resp.get_json()["error"] == "Failed to get quote"


def test_swap_missing_fields(client, fake_http):
    resp = client.post("/api/jupiter/swap", json={"quoteResponse": payloads.JUPITER_QUOTE})

    assert resp.status_code == 400
    assert resp.get_json()["missing"] == ["userPublicKey"]


def test_swap_passthrough(client, fake_http):
    fake_http.add("lite-api.jup.ag/swap/v1/swap", FakeResponse(payloads.JUPITER_SWAP))

    resp = client.post(
        "/api/jupiter/swap",
        json={"quoteResponse": payloads.JUPITER_QUOTE, "userPublicKey": "Wallet111"},
    )

    assert resp.status_code == 200
    assert resp.get_json() == payloads.JUPITER_SWAP
    sent = fake_http.calls[0]
    assert sent["method"] == "POST"
    assert sent["json"]["userPublicKey"] == "Wallet111"
    assert sent["json"]["quoteResponse"] == payloads.JUPITER_QUOTE

###############################################################################
# Price history
###############################################################################

def test_price_history_five_candles(client, fake_http):
    fake_http.add("dex/tokens/", FakeResponse(payloads.DEXSCREENER_TOKEN_PAIRS))

    resp = client.get("/api/price-history/SharedMint?interval=1m&limit=5")

    assert resp.status_code == 200
    body = resp.get_json()
    candles = body["candles"]
    assert len(candles) == 5
    times = [c["time"] for c in candles]
    assert times == sorted(times)
    assert all(b - a == 60 for a, b in zip(times, times[1:]))
    for c in candles:
        assert {"open", "high", "low", "close", "volume"} <= set(c)
    assert candles[-1]["close"] == pytest.approx(0.0042)
    assert body["pair"]["pairAddress"] == "PairAAA"
    assert body["synthetic"] is True


def test_price_history_without_pair(client, fake_http):
    resp = client.get("/api/price-history/Unknown?interval=5m&limit=3")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["pair"] is None
    assert len(body["candles"]) == 3


def test_price_history_limit_is_clamped(client, fake_http):
    resp = client.get("/api/price-history/Unknown?limit=0")
    assert len(resp.get_json()["candles"]) == 1


def test_price_history_bad_interval(client, fake_http):
    resp = client.get("/api/price-history/SharedMint?interval=7m")

    assert resp.status_code == 400
    assert "1m" in resp.get_json()["supported"]


def test_quote_keeps_zero_slippage(client, fake_http):
    fake_http.add("lite-api.jup.ag/swap/v1/quote", FakeResponse(payloads.JUPITER_QUOTE))

    resp = client.post(
        "/api/jupiter/quote",
        json={"inputMint": "A", "outputMint": "B", "amount": 1000, "slippageBps": 0},
    )

    assert resp.status_code == 200
    assert fake_http.calls[0]["params"]["slippageBps"] == 0


@pytest.mark.parametrize("amount", [1.5, True, "1.5", -10, 0, {"value": 1}])
def test_quote_rejects_non_integral_amount(client, fake_http, amount):
    resp = client.post(
        "/api/jupiter/quote",
        json={"inputMint": "A", "outputMint": "B", "amount": amount},
    )

    assert resp.status_code == 400
    assert fake_http.calls == []


def test_quote_accepts_whole_float_amount(client, fake_http):
    fake_http.add("lite-api.jup.ag/swap/v1/quote", FakeResponse(payloads.JUPITER_QUOTE))

    resp = client.post(
        "/api/jupiter/quote",
        json={"inputMint": "A", "outputMint": "B", "amount": 2000.0},
    )

    assert resp.status_code == 200
    assert fake_http.calls[0]["params"]["amount"] == 2000


def _many_dex_pairs(n):
    return {
        "pairs": [
            {
                "chainId": "solana",
                "pairAddress": f"Pair{i}",
                "baseToken": {"address": f"Mint{i}", "symbol": f"T{i}"},
                "priceUsd": "1.0",
            }
            for i in range(n)
        ]
    }


def test_coins_fallback_applies_offset(client, fake_http):
    fake_http.add("dex/search", FakeResponse(_many_dex_pairs(6)))

    resp = client.get("/api/coins?limit=2&offset=3")

    assert resp.status_code == 200
    assert [c["address"] for c in resp.get_json()] == ["Mint3", "Mint4"]


def test_coins_clamps_negative_limit_and_offset(client, fake_http):
    fake_http.add("dex/search", FakeResponse(_many_dex_pairs(3)))

    resp = client.get("/api/coins?limit=-1&offset=-5")

    assert resp.status_code == 200
    assert [c["address"] for c in resp.get_json()] == ["Mint0"]
    params = fake_http.calls[0]["params"]
    assert params["limit"] == 1
    assert params["offset"] == 0


@pytest.mark.parametrize(
    "payload",
    [
        {"pairs": [{"pairAddress": "PairAAA", "priceUsd": "0.0042", "quoteToken": "SOL"}]},
        {"pairs": 5},
        {"pairs": ["not-a-pair"]},
    ],
    ids=["quote-token-string", "pairs-number", "pairs-strings"],
)
def test_price_history_odd_pair_shapes(client, fake_http, payload):
    fake_http.add("dex/tokens/", FakeResponse(payload))

    resp = client.get("/api/price-history/X?interval=1m&limit=5")

    assert resp.status_code == 200
    body = resp.get_json()
    assert len(body["candles"]) == 5
    if body["pair"] is not None:
        assert body["pair"]["quoteSymbol"] is None
        assert body["candles"][-1]["close"] == pytest.approx(0.0042)
