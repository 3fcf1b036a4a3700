import logging
from datetime import datetime, timezone

import requests
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

import settings
from aggregator import aggregate_tokens, fetch_with_fallback, merge_tokens
from candles import INTERVALS, MAX_CANDLES, generate_candles
from jupiter import build_swap, get_quote
from models import to_float, to_text
from sources import (
    fetch_dexscreener_pairs,
    fetch_dexscreener_tokens,
    fetch_pumpfun_coin,
    fetch_pumpfun_coins,
    fetch_token_info_from_data,
)

###############################################################################
# Logging
###############################################################################
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

###############################################################################
# Flask app
###############################################################################
app = Flask(__name__)
app.config["RATELIMIT_ENABLED"] = settings.RATE_LIMIT_ENABLED
CORS(app)
limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=[settings.RATE_LIMIT],
    storage_uri="memory://",
)


MAX_COINS = 200


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _error(error, exc=None, suggestion=None, status=500, **extra):
    body = {"error": error}
    if exc is not None:
        body["message"] = str(exc)
    if suggestion:
        body["suggestion"] = suggestion
    body.update(extra)
    return jsonify(body), status

###############################################################################
# Flask Routes
###############################################################################

@app.route("/", methods=["GET"])
def health():
    return jsonify({
        "status": "online",
        "message": "MCHP Backend API Proxy",
        "version": settings.VERSION,
        "endpoints": {
            "coins": "/api/coins",
            "aggregated": "/api/coins/aggregated",
            "coin": "/api/coin/:address",
            "quote": "/api/jupiter/quote",
            "swap": "/api/jupiter/swap",
            "priceHistory": "/api/price-history/:mint",
        },
    })


@app.route("/api/coins", methods=["GET"])
def get_coins():
    """
    pump.fun coin list as-is; DexScreener tokens (normalized) when pump.fun
    is down or returns nothing.
    """
    limit = max(1, min(request.args.get("limit", 20, type=int), MAX_COINS))
    offset = max(0, request.args.get("offset", 0, type=int))
    include_nsfw = request.args.get("includeNsfw", "false")
    logger.info(f"[coins] => limit={limit}, offset={offset}")

    try:
        data = fetch_with_fallback(
            lambda: fetch_pumpfun_coins(limit=limit, offset=offset, include_nsfw=include_nsfw),
            lambda: [t.to_dict() for t in merge_tokens(fetch_dexscreener_tokens())][offset:offset + limit],
            label="coins",
        )
        logger.info(f"[coins] => returning {len(data)} coins")
        return jsonify(data)
    except requests.exceptions.RequestException as e:
        logger.error(f"[coins] => request error {e}")
        return _error("Failed to fetch coins", e,
                      suggestion="pump.fun and DexScreener are both unreachable, try again shortly.")
    except Exception as e:
        logger.error(f"[coins] => {e}", exc_info=True)
        return _error("Failed to fetch coins", e)


@app.route("/api/coins/aggregated", methods=["GET"])
@limiter.limit(settings.AGGREGATED_RATE_LIMIT)
def get_coins_aggregated():
    """
    All token sources at once, merged by address.
    """
    result = aggregate_tokens()
    if not result.tokens:
        logger.error(f"[coins-aggregated] => all sources failed: {result.sources}")
        return _error(
            "All sources failed",
            suggestion="Check upstream API availability and configured API keys.",
            success=False,
            sources=result.sources,
            timestamp=_now_iso(),
        )
    return jsonify({
        "success": True,
        "count": result.count,
        "sources": result.sources,
        "tokens": [t.to_dict() for t in result.tokens],
        "timestamp": _now_iso(),
    })


@app.route("/api/coin/<address>", methods=["GET"])
def get_coin(address):
    address = address.strip()
    logger.info(f"[coin] => {address}")
    try:
        data = fetch_with_fallback(
            lambda: fetch_pumpfun_coin(address),
            lambda: fetch_token_info_from_data(address),
            label="coin",
        )
        return jsonify(data)
    except requests.exceptions.RequestException as e:
        logger.error(f"[coin] => request error {e}")
        return _error("Failed to fetch coin", e,
                      suggestion="Verify the mint address; SOLANATRACKER_API_KEY may be required.")
    except Exception as e:
        logger.error(f"[coin] => {e}", exc_info=True)
        return _error("Failed to fetch coin", e)

###############################################################################
# Jupiter passthrough
###############################################################################

def _missing(body, *keys):
    return [k for k in keys if body.get(k) in (None, "")]


def _parse_int(value, name):
    """
    Whole numbers only: 1000, "1000" or 1000.0. Booleans, fractions and
    other types raise ValueError.
    """
    if isinstance(value, bool):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(f"{name} must be an integer, got {value!r}")


@app.route("/api/jupiter/quote", methods=["POST"])
def jupiter_quote():
    body = request.get_json(silent=True) or {}
    missing = _missing(body, "inputMint", "outputMint", "amount")
    if missing:
        return _error("Missing required fields", status=400, missing=missing)
    try:
        amount = _parse_int(body["amount"], "amount")
        slippage = body.get("slippageBps")
        slippage_bps = 50 if slippage is None else _parse_int(slippage, "slippageBps")
        if amount <= 0 or slippage_bps < 0:
            raise ValueError("amount must be positive and slippageBps non-negative")
    except ValueError as e:
        return _error("Invalid amount or slippageBps", e, status=400)

    try:
        quote = get_quote(body["inputMint"], body["outputMint"], amount, slippage_bps)
        return jsonify(quote)
    except requests.exceptions.RequestException as e:
        logger.error(f"[jupiter-quote] => {e}")
        return _error("Failed to get quote", e,
                      suggestion="Check the mints are tradable and the amount is in base units.")
    except Exception as e:
        logger.error(f"[jupiter-quote] => {e}", exc_info=True)
        return _error("Failed to get quote", e)


@app.route("/api/jupiter/swap", methods=["POST"])
def jupiter_swap():
    body = request.get_json(silent=True) or {}
    missing = _missing(body, "quoteResponse", "userPublicKey")
    if missing:
        return _error("Missing required fields", status=400, missing=missing)
    try:
        return jsonify(build_swap(body["quoteResponse"], body["userPublicKey"]))
    except requests.exceptions.RequestException as e:
        logger.error(f"[jupiter-swap] => {e}")
        return _error("Failed to build swap transaction", e,
                      suggestion="Quotes expire quickly, request a fresh quote and retry.")
    except Exception as e:
        logger.error(f"[jupiter-swap] => {e}", exc_info=True)
        return _error("Failed to build swap transaction", e)

###############################################################################
# Price history => synthetic candles + one real pair lookup
###############################################################################

def _lookup_pair(mint):
    try:
        pairs = fetch_dexscreener_pairs(mint)
    except (requests.exceptions.RequestException, ValueError, TypeError, AttributeError) as e:
        logger.warning(f"[price-history] => pair lookup failed for {mint}: {e}")
        return None
    if not pairs:
        return None
    pair = pairs[0]
    quote = pair.get("quoteToken")
    return {
        "pairAddress": to_text(pair.get("pairAddress")),
        "dexId": to_text(pair.get("dexId")),
        "priceUsd": to_float(pair.get("priceUsd")),
        "quoteSymbol": to_text(quote.get("symbol")) if isinstance(quote, dict) else None,
    }


@app.route("/api/price-history/<mint>", methods=["GET"])
def price_history(mint):
    interval = request.args.get("interval", "1m")
    if interval not in INTERVALS:
        return _error("Unsupported interval", status=400, supported=list(INTERVALS))
    limit = request.args.get("limit", 100, type=int)
    limit = max(1, min(limit, MAX_CANDLES))

    pair = _lookup_pair(mint)
    price = pair["priceUsd"] if pair else None
    candles = generate_candles(price, INTERVALS[interval], limit)
    return jsonify({
        "success": True,
        "mint": mint,
        "interval": interval,
        "pair": pair,
        "candles": candles,
        "synthetic": True,
    })

###############################################################################
# MAIN
###############################################################################
if __name__ == "__main__":
    logger.info("=" * 50)
    logger.info("[MAIN] MCHP Backend API Proxy")
    logger.info(f"[MAIN] Server running on port {settings.PORT}")
    logger.info("=" * 50)
    app.run(host="0.0.0.0", port=settings.PORT)
