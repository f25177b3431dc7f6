import sys
from datetime import datetime, timezone

import psutil


def _mb(num_bytes: int) -> str:
    return f"{num_bytes / 1024 / 1024:.2f} MB"


def get_proxy_health():
    mem = psutil.Process().memory_info()
    # `data` (heap + stack segment) is Linux-only; fall back to the virtual size elsewhere
    heap = getattr(mem, "data", mem.vms)
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "platform": sys.platform,
        "memory": {
            "rss": _mb(mem.rss),
            "heap": _mb(heap),
        },
    }
