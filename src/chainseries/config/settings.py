from decimal import Decimal
import os
from dotenv import load_dotenv
load_dotenv()
# ---- Tracked pair ----
TRACKED_ADDRESS = os.environ.get("TRACKED_ADDRESS", "0x94845333028B1204Fbe14E1278Fd4Adde46B22ce")
CONTRACT_ADDRESS = os.environ.get("CONTRACT_ADDRESS", "0xE68F1cb52659f256Fee05Fd088D588908A6e85A1")

# added to the reported current balance (ETH)
BALANCE_OFFSET_ETH = Decimal(os.environ.get("BALANCE_OFFSET_ETH", "0"))

# ---- RPC provider ----
INFURA_API_KEY = os.environ.get("INFURA_API_KEY")
RPC_URL = os.environ.get("RPC_URL") or f"https://mainnet.infura.io/v3/{INFURA_API_KEY or ''}"

# ---- Etherscan ----
ETHERSCAN_API_KEY = os.environ.get("ETHERSCAN_API_KEY")
ETHERSCAN_CHAIN_ID = int(os.environ.get("ETHERSCAN_CHAIN_ID", "1"))          # Ethereum mainnet
ETHERSCAN_BASE_URL = os.environ.get("ETHERSCAN_BASE_URL", "https://api.etherscan.io/v2/api")

# ---- Upstream throttling (shared by RPC and Etherscan) ----
RATE_LIMIT_TOKENS = int(os.environ.get("RATE_LIMIT_TOKENS", "5"))
RATE_LIMIT_WINDOW_SEC = float(os.environ.get("RATE_LIMIT_WINDOW_SEC", "1.0"))
RATE_LIMIT_MAX_WAIT_SEC = float(os.environ.get("RATE_LIMIT_MAX_WAIT_SEC", "30"))
HTTP_TIMEOUT_SEC = float(os.environ.get("HTTP_TIMEOUT_SEC", "15"))
HTTP_MAX_RETRIES = int(os.environ.get("HTTP_MAX_RETRIES", "5"))
HTTP_BACKOFF_BASE_SEC = float(os.environ.get("HTTP_BACKOFF_BASE_SEC", "0.5"))

# ---- Cache ----
REFRESH_INTERVAL_SEC = float(os.environ.get("REFRESH_INTERVAL_SEC", "1800"))   # 30 minutes

# ---- Launch smoothing (custom window) ----
LAUNCH_DATE = os.environ.get("LAUNCH_DATE", "2024-03-21")
SMOOTHING_END_DATE = os.environ.get("SMOOTHING_END_DATE", "2024-03-23")

# ---- Read API ----
SIMULATE_MULTIPLIER = Decimal(os.environ.get("SIMULATE_MULTIPLIER", "1.1"))
API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("PORT", os.environ.get("API_PORT", "3000")))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
