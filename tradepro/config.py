import os

from dotenv import load_dotenv

load_dotenv()

# =========================
#  Chart / Projection
# =========================

# Sign tag of the MACD histogram (value >= 0 -> up, else down)
HIST_UP_COLOR: str = os.getenv("HIST_UP_COLOR", "#26a69a")
HIST_DOWN_COLOR: str = os.getenv("HIST_DOWN_COLOR", "#ef5350")

# Volume histogram under the candles (close >= open -> up)
VOLUME_UP_COLOR: str = os.getenv("VOLUME_UP_COLOR", "#26a69a")
VOLUME_DOWN_COLOR: str = os.getenv("VOLUME_DOWN_COLOR", "#ef5350")

# 0 = send every point; otherwise only the newest N points per channel
MAX_PAYLOAD_POINTS: int = int(os.getenv("MAX_PAYLOAD_POINTS", "0"))

# =========================
#  Data / Replay
# =========================

DEFAULT_SYMBOL: str = os.getenv("DEFAULT_SYMBOL", "BTC/USDT")

# Rows of the CSV loaded as history by main.py, the rest are streamed bar by bar
HISTORY_SPLIT: int = int(os.getenv("HISTORY_SPLIT", "300"))

# =========================
#  Logs
# =========================

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
