import os

from dotenv import load_dotenv

load_dotenv()

###############################################################################
# Server
###############################################################################
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
VERSION = "1.0.0"

###############################################################################
# Timeouts (seconds)
###############################################################################
# per-adapter timeout inside the aggregated fan-out
SOURCE_TIMEOUT = float(os.getenv("SOURCE_TIMEOUT", "5"))
# single-source endpoints and jupiter passthrough
UPSTREAM_TIMEOUT = float(os.getenv("UPSTREAM_TIMEOUT", "10"))

###############################################################################
# Upstream APIs
###############################################################################
PUMPFUN_BASE_URL = os.getenv("PUMPFUN_BASE_URL", "https://frontend-api.pump.fun")
DEXSCREENER_BASE_URL = os.getenv("DEXSCREENER_BASE_URL", "https://api.dexscreener.com")
DEXSCREENER_SEARCH_QUERY = os.getenv("DEXSCREENER_SEARCH_QUERY", "solana")
BIRDEYE_BASE_URL = os.getenv("BIRDEYE_BASE_URL", "https://public-api.birdeye.so")
SOLANATRACKER_BASE_URL = os.getenv("SOLANATRACKER_BASE_URL", "https://data.solanatracker.io")
JUPITER_TOKENS_URL = os.getenv(
    "JUPITER_TOKENS_URL", "https://lite-api.jup.ag/tokens/v2/toptraded/24h"
)
JUPITER_API_URL = os.getenv("JUPITER_API_URL", "https://lite-api.jup.ag/swap/v1")
JUPITER_FALLBACK_URL = os.getenv("JUPITER_FALLBACK_URL", "https://quote-api.jup.ag/v6")

# optional keys => the matching adapters are skipped when unset
BIRDEYE_API_KEY = os.getenv("BIRDEYE_API_KEY", "")
SOLANATRACKER_API_KEY = os.getenv("SOLANATRACKER_API_KEY", "")

SOURCE_LIMIT = int(os.getenv("SOURCE_LIMIT", "50"))

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "Mozilla/5.0",
}

###############################################################################
# Inbound rate limiting (per client address)
###############################################################################
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() in {"1", "true", "yes"}
AGGREGATED_RATE_LIMIT = os.getenv("AGGREGATED_RATE_LIMIT", "30 per minute")
RATE_LIMIT = os.getenv("RATE_LIMIT", "60 per minute")
