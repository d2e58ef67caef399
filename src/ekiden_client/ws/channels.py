"""Canonical channel names. These must match the ``channel`` field of inbound event frames."""


def orderbook(market_addr: str) -> str:
    return f"orderbook/{market_addr}"


def trades(market_addr: str) -> str:
    return f"trades/{market_addr}"


def user(user_addr: str) -> str:
    """Orders, positions and balances for one account."""
    return f"user/{user_addr}"


def candles(market_addr: str, interval: str) -> str:
    return f"candles/{market_addr}/{interval}"
