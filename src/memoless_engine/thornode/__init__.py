from .client import ThornodeClient
from .models import InboundAddress, MemoCheck, MemoReference, NetworkInfo, PoolInfo

__all__ = [
    "ThornodeClient",
    "InboundAddress",
    "MemoCheck",
    "MemoReference",
    "NetworkInfo",
    "PoolInfo",
]
