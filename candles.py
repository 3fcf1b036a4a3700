"""
Synthetic OHLCV candles for the price chart.

Placeholder data: nothing here is real trade history. The newest candle
closes at the current price and older candles are a random walk backwards
from it.
"""
import random
import time

INTERVALS = {
    "1m": 60,
    "5m": 300,
    "15m": 900,
    "1h": 3600,
    "4h": 14400,
    "1d": 86400,
}

MAX_CANDLES = 1000
MAX_MOVE = 0.02  # +-2% per candle
DEFAULT_PRICE = 0.00001


def generate_candles(price, interval_seconds, limit, now=None, rng=None):
    rng = rng or random.Random()
    now = int(time.time() if now is None else now)
    start = now - (now % interval_seconds)
    price = float(price) if price and price > 0 else DEFAULT_PRICE

    candles = []
    for i in range(limit):
        close = price
        open_ = close * (1 + rng.uniform(-MAX_MOVE, MAX_MOVE))
        high = max(open_, close) * (1 + rng.uniform(0, MAX_MOVE / 2))
        low = min(open_, close) * (1 - rng.uniform(0, MAX_MOVE / 2))
        candles.append({
            "time": start - i * interval_seconds,
            "open": open_,
            "high": high,
            "low": low,
            "close": close,
            "volume": round(rng.uniform(1_000, 100_000), 2),
        })
        price = open_

    # built newest first
    candles.reverse()
    return candles
