"""
Constants for the MEXC P2P client.
"""

# Gateways: short identifier -> origin URL
GATEWAYS = {
    "mexc.com": "https://api.mexc.com",
    "mexc.co": "https://api.mexc.co",
}
DEFAULT_GATEWAY = "mexc.com"

# API Configuration
MARKET_ADS_PATH = "/api/v3/fiat/market/ads/pagination"
MERCHANT_ADS_PATH = "/api/v3/fiat/merchant/ads/pagination"
SAVE_OR_UPDATE_AD_PATH = "/api/v3/fiat/merchant/ads/save_or_update"
DEFAULT_TIMEOUT = 15.0
MIN_TIMEOUT = 10.0
MAX_TIMEOUT = 15.0

# Authentication Configuration
API_KEY_HEADER = "X-MEXC-APIKEY"

# Filter defaults
DEFAULT_FIAT_UNIT = "VND"
DEFAULT_COIN_ID = "USDT"
DEFAULT_PAGE = 1
DEFAULT_OWN_ADS_LIMIT = 10
SIDES = ("BUY", "SELL")
ADV_STATUSES = ("OPEN", "CLOSE")

# Rate limiting (per client identity)
RATE_LIMIT_WINDOW_MS = 1000
RATE_LIMIT_MAX_REQUESTS = 10

# Upstream envelope
SUCCESS_CODE = 0
ERROR_CODE = -1
