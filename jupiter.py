import logging

import requests

import settings
from aggregator import fetch_with_fallback

logger = logging.getLogger(__name__)


def _quote(base_url, params):
    r = requests.get(
        f"{base_url}/quote",
        params=params,
        headers=settings.DEFAULT_HEADERS,
        timeout=settings.UPSTREAM_TIMEOUT,
    )
    r.raise_for_status()
    return r.json()


def _swap(base_url, payload):
    r = requests.post(
        f"{base_url}/swap",
        json=payload,
        headers=settings.DEFAULT_HEADERS,
        timeout=settings.UPSTREAM_TIMEOUT,
    )
    r.raise_for_status()
    return r.json()


def get_quote(input_mint, output_mint, amount, slippage_bps=50):
    """
    Price quote for swapping `amount` base units of input_mint into
    output_mint. Returned as-is so the client can hand it back to /swap.
    """
    params = {
        "inputMint": input_mint,
        "outputMint": output_mint,
        "amount": int(amount),
        "slippageBps": int(slippage_bps),
    }
    logger.info(f"[get_quote] => {input_mint} -> {output_mint}, amount={params['amount']}")
    return fetch_with_fallback(
        lambda: _quote(settings.JUPITER_API_URL, params),
        lambda: _quote(settings.JUPITER_FALLBACK_URL, params),
        label="jupiter quote",
    )


def build_swap(quote_response, user_public_key):
    """
    Ask Jupiter for a serialized swap transaction; the client signs it.
    """
    payload = {
        "quoteResponse": quote_response,
        "userPublicKey": user_public_key,
        "wrapAndUnwrapSol": True,
        "dynamicComputeUnitLimit": True,
    }
    logger.info(f"[build_swap] => user={user_public_key}")
    return fetch_with_fallback(
        lambda: _swap(settings.JUPITER_API_URL, payload),
        lambda: _swap(settings.JUPITER_FALLBACK_URL, payload),
        label="jupiter swap",
    )
