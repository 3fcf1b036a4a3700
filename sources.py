import functools
import logging

import requests

import settings
from models import NormalizedToken, to_float, to_int, to_text

logger = logging.getLogger(__name__)

###############################################################################
# HTTP helper
###############################################################################

def _get_json(url, params=None, headers=None, timeout=None):
    """
    One GET => parsed JSON. Raises on non-2xx, network errors, timeouts
    and bodies that are not JSON.
    """
    hdrs = dict(settings.DEFAULT_HEADERS)
    if headers:
        hdrs.update(headers)
    r = requests.get(
        url,
        params=params,
        headers=hdrs,
        timeout=timeout or settings.UPSTREAM_TIMEOUT,
    )
    r.raise_for_status()
    return r.json()


def _expect(payload, kind, what):
    if not isinstance(payload, kind):
        raise ValueError(f"{what}: expected {kind.__name__}, got {type(payload).__name__}")
    return payload


def _dict(value):
    return value if isinstance(value, dict) else {}


def _list(value):
    return value if isinstance(value, list) else []


def _normalize_all(items, normalize):
    """
    Normalize item by item; a malformed item is skipped, the rest are kept.
    """
    out = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            tok = normalize(item)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            logger.debug(f"[{normalize.__name__}] => skipping malformed item: {e}")
            continue
        if tok is not None:
            out.append(tok)
    return out

###############################################################################
# Normalizers => one upstream item to NormalizedToken (None when no address)
###############################################################################

def normalize_pumpfun(item):
    address = to_text(item.get("mint"))
    if not address:
        return None
    return NormalizedToken(
        address=address,
        source="pumpfun",
        symbol=to_text(item.get("symbol")),
        name=to_text(item.get("name")),
        market_cap=to_float(item.get("usd_market_cap")),
        created_at=to_int(item.get("created_timestamp")),
        logo=to_text(item.get("image_uri")),
    )


def normalize_dexscreener(pair):
    base = _dict(pair.get("baseToken"))
    address = to_text(base.get("address"))
    if not address:
        return None
    volume = _dict(pair.get("volume"))
    liquidity = _dict(pair.get("liquidity"))
    change = _dict(pair.get("priceChange"))
    market_cap = pair.get("marketCap")
    if market_cap is None:
        market_cap = pair.get("fdv")
    return NormalizedToken(
        address=address,
        source="dexscreener",
        symbol=to_text(base.get("symbol")),
        name=to_text(base.get("name")),
        price_usd=to_float(pair.get("priceUsd")),
        volume_24h=to_float(volume.get("h24")),
        liquidity=to_float(liquidity.get("usd")),
        market_cap=to_float(market_cap),
        price_change_24h=to_float(change.get("h24")),
        pair_address=to_text(pair.get("pairAddress")),
        dex_id=to_text(pair.get("dexId")),
        created_at=to_int(pair.get("pairCreatedAt")),
        logo=to_text(_dict(pair.get("info")).get("imageUrl")),
    )


def normalize_birdeye(item):
    address = to_text(item.get("address"))
    if not address:
        return None
    return NormalizedToken(
        address=address,
        source="birdeye",
        symbol=to_text(item.get("symbol")),
        name=to_text(item.get("name")),
        price_usd=to_float(item.get("price")),
        volume_24h=to_float(item.get("v24hUSD")),
        liquidity=to_float(item.get("liquidity")),
        market_cap=to_float(item.get("mc")),
        price_change_24h=to_float(item.get("v24hChangePercent")),
        decimals=to_int(item.get("decimals")),
        logo=to_text(item.get("logoURI")),
    )


def normalize_solanatracker(item):
    token = _dict(item.get("token"))
    address = to_text(token.get("mint"))
    if not address:
        return None
    pools = _list(item.get("pools"))
    pool = pools[0] if pools and isinstance(pools[0], dict) else {}
    day = _dict(_dict(item.get("events")).get("24h"))
    return NormalizedToken(
        address=address,
        source="solanatracker",
        symbol=to_text(token.get("symbol")),
        name=to_text(token.get("name")),
        price_usd=to_float(_dict(pool.get("price")).get("usd")),
        volume_24h=to_float(_dict(pool.get("txns")).get("volume")),
        liquidity=to_float(_dict(pool.get("liquidity")).get("usd")),
        market_cap=to_float(_dict(pool.get("marketCap")).get("usd")),
        price_change_24h=to_float(day.get("priceChangePercentage")),
        pair_address=to_text(pool.get("poolId")),
        dex_id=to_text(pool.get("market")),
        created_at=to_int(pool.get("createdAt")),
        decimals=to_int(token.get("decimals")),
        holder=to_int(item.get("holders")),
        logo=to_text(token.get("image")),
    )


def normalize_jupiter(item):
    address = to_text(item.get("id"))
    if not address:
        return None
    stats = _dict(item.get("stats24h"))
    buy = to_float(stats.get("buyVolume"))
    sell = to_float(stats.get("sellVolume"))
    volume = None
    if buy is not None or sell is not None:
        volume = (buy or 0.0) + (sell or 0.0)
    return NormalizedToken(
        address=address,
        source="jupiter",
        symbol=to_text(item.get("symbol")),
        name=to_text(item.get("name")),
        price_usd=to_float(item.get("usdPrice")),
        volume_24h=volume,
        liquidity=to_float(item.get("liquidity")),
        market_cap=to_float(item.get("mcap")),
        price_change_24h=to_float(stats.get("priceChange")),
        decimals=to_int(item.get("decimals")),
        holder=to_int(item.get("holderCount")),
        logo=to_text(item.get("icon")),
    )

###############################################################################
# Token list fetchers => raise on any failure
###############################################################################

def fetch_pumpfun_coins(limit=20, offset=0, include_nsfw="false", timeout=None):
    """
    GET /coins on the pump.fun frontend API => raw list of coins.
    """
    url = f"{settings.PUMPFUN_BASE_URL}/coins"
    params = {"offset": offset, "limit": limit, "includeNsfw": include_nsfw}
    data = _get_json(url, params=params, timeout=timeout)
    return _expect(data, list, "pump.fun coins")


def fetch_pumpfun_tokens(timeout=None):
    coins = fetch_pumpfun_coins(limit=settings.SOURCE_LIMIT, timeout=timeout)
    return _normalize_all(coins, normalize_pumpfun)


def fetch_dexscreener_tokens(query=None, timeout=None):
    """
    DexScreener pair search, solana pairs only. One record per pair, so
    the same token can show up more than once before merging.
    """
    url = f"{settings.DEXSCREENER_BASE_URL}/latest/dex/search"
    data = _get_json(
        url,
        params={"q": query or settings.DEXSCREENER_SEARCH_QUERY},
        timeout=timeout,
    )
    pairs = _list(_expect(data, dict, "dexscreener search").get("pairs"))
    pairs = [p for p in pairs if isinstance(p, dict) and p.get("chainId") == "solana"]
    return _normalize_all(pairs, normalize_dexscreener)


def fetch_birdeye_tokens(timeout=None):
    if not settings.BIRDEYE_API_KEY:
        logger.info("[birdeye] => no BIRDEYE_API_KEY configured, skipping")
        return []
    url = f"{settings.BIRDEYE_BASE_URL}/defi/tokenlist"
    headers = {"X-API-KEY": settings.BIRDEYE_API_KEY, "x-chain": "solana"}
    params = {
        "sort_by": "v24hUSD",
        "sort_type": "desc",
        "offset": 0,
        "limit": min(settings.SOURCE_LIMIT, 50),
    }
    data = _get_json(url, params=params, headers=headers, timeout=timeout)
    body = _dict(_expect(data, dict, "birdeye tokenlist").get("data"))
    items = _list(body.get("tokens"))
    return _normalize_all(items, normalize_birdeye)


def fetch_solanatracker_tokens(timeout=None):
    if not settings.SOLANATRACKER_API_KEY:
        logger.info("[solanatracker] => no SOLANATRACKER_API_KEY configured, skipping")
        return []
    url = f"{settings.SOLANATRACKER_BASE_URL}/tokens/trending"
    headers = {"x-api-key": settings.SOLANATRACKER_API_KEY}
    data = _get_json(url, headers=headers, timeout=timeout)
    return _normalize_all(_expect(data, list, "solanatracker trending"), normalize_solanatracker)


def fetch_jupiter_tokens(timeout=None):
    data = _get_json(
        settings.JUPITER_TOKENS_URL,
        params={"limit": settings.SOURCE_LIMIT},
        timeout=timeout,
    )
    return _normalize_all(_expect(data, list, "jupiter tokens"), normalize_jupiter)

###############################################################################
# Single token lookups => raw passthrough
###############################################################################

def fetch_pumpfun_coin(address, timeout=None):
    url = f"{settings.PUMPFUN_BASE_URL}/coins/{address}"
    return _expect(_get_json(url, timeout=timeout), dict, "pump.fun coin")


def fetch_token_info_from_data(token_address, timeout=None):
    """
    GET /tokens/{tokenAddress} on Solana Tracker => token info, pools, events.
    """
    url = f"{settings.SOLANATRACKER_BASE_URL}/tokens/{token_address}"
    headers = {}
    if settings.SOLANATRACKER_API_KEY:
        headers["x-api-key"] = settings.SOLANATRACKER_API_KEY
    return _expect(_get_json(url, headers=headers, timeout=timeout), dict, "solanatracker token")


def fetch_dexscreener_pairs(mint, timeout=None):
    url = f"{settings.DEXSCREENER_BASE_URL}/latest/dex/tokens/{mint}"
    data = _expect(_get_json(url, timeout=timeout), dict, "dexscreener tokens")
    return [p for p in _list(data.get("pairs")) if isinstance(p, dict)]

###############################################################################
# Adapters => never raise, failures become an empty contribution
###############################################################################

def source_adapter(name, fetch):
    """
    Wrap a raising fetcher => adapter that logs failures and returns [].
    Uses the short per-source timeout.
    """
    @functools.wraps(fetch)
    def adapter():
        try:
            tokens = fetch(timeout=settings.SOURCE_TIMEOUT)
        except requests.exceptions.RequestException as e:
            logger.warning(f"[{name}] => request failed: {e}")
            return []
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning(f"[{name}] => malformed response: {e}")
            return []
        logger.debug(f"[{name}] => {len(tokens)} tokens")
        return tokens

    adapter.source_name = name
    return adapter


# registration order is the merge order
SOURCES = [
    source_adapter("pumpfun", fetch_pumpfun_tokens),
    source_adapter("dexscreener", fetch_dexscreener_tokens),
    source_adapter("birdeye", fetch_birdeye_tokens),
    source_adapter("solanatracker", fetch_solanatracker_tokens),
    source_adapter("jupiter", fetch_jupiter_tokens),
]
