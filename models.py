import math
from dataclasses import dataclass, fields
from typing import Optional


def to_float(value):
    """
    Coerce an upstream numeric field => float, or None when it is missing
    or not a finite number. Strings like "0.0012" are accepted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def to_int(value):
    out = to_float(value)
    if out is None:
        return None
    return int(out)


def to_text(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# python attribute => JSON key
_JSON_KEYS = {
    "address": "address",
    "symbol": "symbol",
    "name": "name",
    "price_usd": "priceUsd",
    "volume_24h": "volume24h",
    "liquidity": "liquidity",
    "market_cap": "marketCap",
    "price_change_24h": "priceChange24h",
    "source": "source",
    "pair_address": "pairAddress",
    "dex_id": "dexId",
    "created_at": "createdAt",
    "decimals": "decimals",
    "holder": "holder",
    "logo": "logo",
}


@dataclass
class NormalizedToken:
    """
    One token as reported by a single source.

    Numeric fields the source did not provide stay None and are left out
    of the JSON form, so field_count() reflects how much the source knew.
    """
    address: str
    source: str
    symbol: Optional[str] = None
    name: Optional[str] = None
    price_usd: Optional[float] = None
    volume_24h: Optional[float] = None
    liquidity: Optional[float] = None
    market_cap: Optional[float] = None
    price_change_24h: Optional[float] = None
    pair_address: Optional[str] = None
    dex_id: Optional[str] = None
    created_at: Optional[int] = None
    decimals: Optional[int] = None
    holder: Optional[int] = None
    logo: Optional[str] = None

    @property
    def key(self):
        return self.address.lower()

    def field_count(self):
        return sum(1 for f in fields(self) if getattr(self, f.name) is not None)

    def to_dict(self):
        out = {}
        for f in fields(self):
            val = getattr(self, f.name)
            if val is not None:
                out[_JSON_KEYS[f.name]] = val
        return out
