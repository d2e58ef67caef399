"""Request, response and websocket payload types for the Ekiden API.

All wire models are pydantic models. Inbound JSON goes through
``Model.from_dict`` (or the ``parse_*`` helpers for tagged unions); unknown
keys are ignored, and missing or mistyped fields raise
:class:`~ekiden_client.exceptions.SerializationError`. Amounts, prices, sizes
and timestamps are unsigned integers in minor units.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ekiden_client.exceptions import SerializationError

M = TypeVar("M", bound="Model")


class Model(BaseModel):
    """Base class for JSON-backed models."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def from_dict(cls: Type[M], data: Any) -> M:
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise SerializationError(f"Invalid {cls.__name__} payload: {exc}") from exc

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class _FrozenModel(Model):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_jsonable(item) for key, item in value.items()}
    return value


def parse_list(cls: Type[M], data: Any) -> List[M]:
    """Deserialize a JSON array into a list of ``cls`` instances."""
    if not isinstance(data, list):
        raise SerializationError(f"Expected a list of {cls.__name__}, got {type(data).__name__}")
    return [cls.from_dict(item) for item in data]


# ===== Pagination =====


class Pagination(Model):
    limit: Optional[NonNegativeInt] = 100
    offset: Optional[NonNegativeInt] = 0
    page: Optional[NonNegativeInt] = None
    page_size: Optional[NonNegativeInt] = None

    @classmethod
    def new(cls, limit: int, offset: int) -> "Pagination":
        return cls(limit=limit, offset=offset)

    @classmethod
    def with_page(cls, page: int, page_size: int) -> "Pagination":
        return cls(limit=None, offset=None, page=page, page_size=page_size)

    def to_query_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for name in ("limit", "offset", "page", "page_size"):
            value = getattr(self, name)
            if value is not None:
                params[name] = str(value)
        return params


def _with_optional(params: Dict[str, str], **values: Any) -> Dict[str, str]:
    for key, value in values.items():
        if value is not None:
            params[key] = str(value)
    return params


# ===== Authentication =====


class AuthorizeParams(Model):
    signature: str
    public_key: str


class AuthorizeResponse(Model):
    token: str


# ===== Markets =====


class MarketResponse(Model):
    symbol: str
    base_addr: str
    base_decimals: NonNegativeInt
    quote_addr: str
    quote_decimals: NonNegativeInt
    min_order_size: NonNegativeInt
    max_leverage: NonNegativeInt
    initial_margin_ratio: float
    maintenance_margin_ratio: float
    mark_price: NonNegativeInt
    oracle_price: NonNegativeInt
    open_interest: NonNegativeInt
    funding_index: NonNegativeInt
    funding_epoch: NonNegativeInt
    root: str
    epoch: NonNegativeInt
    created_at: str
    updated_at: str


class ListMarketsParams(Model):
    market_addr: Optional[str] = None
    symbol: Optional[str] = None
    pagination: Pagination = Field(default_factory=Pagination)

    def to_query_params(self) -> Dict[str, str]:
        return _with_optional(
            self.pagination.to_query_params(),
            market_addr=self.market_addr,
            symbol=self.symbol,
        )


# ===== Orders =====


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    MARKET = "market"
    LIMIT = "limit"


class OrderResponse(Model):
    sid: str
    side: str
    size: NonNegativeInt
    price: NonNegativeInt
    leverage: NonNegativeInt
    order_type: str = Field(alias="type")
    status: str
    user_addr: str
    market_addr: str
    seq: NonNegativeInt
    timestamp: NonNegativeInt


class OrderStatus(Model):
    status: str


class ListOrdersParams(Model):
    market_addr: str
    side: Optional[str] = None
    pagination: Pagination = Field(default_factory=Pagination)

    def to_query_params(self) -> Dict[str, str]:
        params = self.pagination.to_query_params()
        params["market_addr"] = self.market_addr
        return _with_optional(params, side=self.side)


# ===== Fills =====


class FillResponse(Model):
    sid: str
    price: NonNegativeInt
    size: NonNegativeInt
    side: str
    taker_addr: str
    maker_addr: str
    market_addr: str
    seq: NonNegativeInt
    timestamp: NonNegativeInt


class ListFillsParams(Model):
    market_addr: str
    pagination: Pagination = Field(default_factory=Pagination)

    def to_query_params(self) -> Dict[str, str]:
        params = self.pagination.to_query_params()
        params["market_addr"] = self.market_addr
        return params


# ===== User =====


class VaultResponse(Model):
    vault_addr: str
    user_addr: str
    asset_addr: str
    balance: NonNegativeInt
    locked_balance: NonNegativeInt
    available_balance: NonNegativeInt
    created_at: str
    updated_at: str


class ListVaultsParams(Model):
    pagination: Pagination = Field(default_factory=Pagination)

    def to_query_params(self) -> Dict[str, str]:
        return self.pagination.to_query_params()


class PositionResponse(Model):
    market_addr: str
    user_addr: str
    side: str
    size: NonNegativeInt
    entry_price: NonNegativeInt
    mark_price: NonNegativeInt
    unrealized_pnl: int
    margin: NonNegativeInt
    leverage: NonNegativeInt
    liquidation_price: NonNegativeInt
    created_at: str
    updated_at: str


class ListPositionsParams(Model):
    market_addr: Optional[str] = None
    pagination: Pagination = Field(default_factory=Pagination)

    def to_query_params(self) -> Dict[str, str]:
        return _with_optional(self.pagination.to_query_params(), market_addr=self.market_addr)


class LeverageResponse(Model):
    market_addr: str
    user_addr: str
    leverage: NonNegativeInt
    created_at: str
    updated_at: str


class GetUserLeverageParams(Model):
    market_addr: str

    def to_query_params(self) -> Dict[str, str]:
        return {"market_addr": self.market_addr}


class SetUserLeverageParams(Model):
    market_addr: str
    leverage: NonNegativeInt


class PortfolioSummary(Model):
    total_value: NonNegativeInt
    available_balance: NonNegativeInt
    locked_balance: NonNegativeInt
    unrealized_pnl: int
    margin_used: NonNegativeInt
    margin_available: NonNegativeInt


class PortfolioPosition(Model):
    market_addr: str
    symbol: str
    side: str
    size: NonNegativeInt
    entry_price: NonNegativeInt
    mark_price: NonNegativeInt
    unrealized_pnl: int
    margin: NonNegativeInt
    leverage: NonNegativeInt


class PortfolioVault(Model):
    vault_addr: str
    asset_addr: str
    symbol: str
    balance: NonNegativeInt
    locked_balance: NonNegativeInt
    available_balance: NonNegativeInt
    usd_value: NonNegativeInt


class PortfolioResponse(Model):
    summary: PortfolioSummary
    positions: List[PortfolioPosition]
    vaults: List[PortfolioVault]


# ===== Intents =====


class ActionPayload(Model):
    action_type: str = Field(alias="type")
    data: Any = None


class SendIntentParams(Model):
    actions: List[ActionPayload]
    signature: str


class IntentOutput(Model):
    action_type: str
    result: Any = None


class SendIntentResponse(Model):
    seq: NonNegativeInt
    status: str
    outputs: List[IntentOutput]


# ===== Deposits / withdrawals =====


class DepositResponse(Model):
    user_addr: str
    vault_addr: str
    asset_addr: str
    amount: NonNegativeInt
    tx_hash: str
    version: NonNegativeInt
    timestamp: NonNegativeInt
    status: str


class WithdrawResponse(Model):
    user_addr: str
    vault_addr: str
    asset_addr: str
    amount: NonNegativeInt
    tx_hash: str
    version: NonNegativeInt
    timestamp: NonNegativeInt
    status: str


class _TransferFilter(Model):
    user_addr: Optional[str] = None
    vault_addr: Optional[str] = None
    asset_addr: Optional[str] = None
    start_version: Optional[NonNegativeInt] = None
    end_version: Optional[NonNegativeInt] = None
    pagination: Pagination = Field(default_factory=Pagination)

    def to_query_params(self) -> Dict[str, str]:
        return _with_optional(
            self.pagination.to_query_params(),
            user_addr=self.user_addr,
            vault_addr=self.vault_addr,
            asset_addr=self.asset_addr,
            start_version=self.start_version,
            end_version=self.end_version,
        )


class ListDepositsParams(_TransferFilter):
    pass


class ListWithdrawsParams(_TransferFilter):
    pass


# ===== Candles / funding =====


class CandleResponse(Model):
    market_addr: str
    timestamp: NonNegativeInt
    open: NonNegativeInt
    high: NonNegativeInt
    low: NonNegativeInt
    close: NonNegativeInt
    volume: NonNegativeInt
    interval: str


class ListCandlesParams(Model):
    market_addr: str
    interval: str  # "1m", "5m", "15m", "1h", "4h", "1d"
    start_time: Optional[NonNegativeInt] = None
    end_time: Optional[NonNegativeInt] = None
    pagination: Pagination = Field(default_factory=Pagination)

    def to_query_params(self) -> Dict[str, str]:
        params = self.pagination.to_query_params()
        params["market_addr"] = self.market_addr
        params["interval"] = self.interval
        return _with_optional(params, start_time=self.start_time, end_time=self.end_time)


class FundingRateResponse(Model):
    market_addr: str
    funding_rate: float
    funding_index: NonNegativeInt
    funding_epoch: NonNegativeInt
    next_funding_time: NonNegativeInt
    timestamp: NonNegativeInt


class ListFundingRatesParams(Model):
    market_addr: str
    start_time: Optional[NonNegativeInt] = None
    end_time: Optional[NonNegativeInt] = None
    pagination: Pagination = Field(default_factory=Pagination)

    def to_query_params(self) -> Dict[str, str]:
        params = self.pagination.to_query_params()
        params["market_addr"] = self.market_addr
        return _with_optional(params, start_time=self.start_time, end_time=self.end_time)


# ===== WebSocket: outbound control frames =====


class WsRequest(_FrozenModel):
    type: str

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class PingRequest(WsRequest):
    type: Literal["ping"] = "ping"


class SubscribeRequest(WsRequest):
    type: Literal["subscribe"] = "subscribe"
    channel: str


class UnsubscribeRequest(WsRequest):
    type: Literal["unsubscribe"] = "unsubscribe"
    channel: str


# ===== WebSocket: event payloads =====


class OrderbookLevel(_FrozenModel):
    price: NonNegativeInt
    size: NonNegativeInt


class WsEvent(_FrozenModel):
    """Base class of every payload carried by an ``event`` frame."""

    type: str


class OrderbookSnapshot(WsEvent):
    type: Literal["orderbook_snapshot"] = "orderbook_snapshot"
    market_addr: str
    bids: List[OrderbookLevel]
    asks: List[OrderbookLevel]
    timestamp: NonNegativeInt


class OrderbookUpdate(WsEvent):
    type: Literal["orderbook_update"] = "orderbook_update"
    market_addr: str
    bids: List[OrderbookLevel]
    asks: List[OrderbookLevel]
    timestamp: NonNegativeInt


class TradeEvent(WsEvent):
    type: Literal["trade"] = "trade"
    market_addr: str
    price: NonNegativeInt
    size: NonNegativeInt
    side: str
    timestamp: NonNegativeInt


class OrderUpdate(WsEvent):
    type: Literal["order_update"] = "order_update"
    order: OrderResponse


class PositionUpdate(WsEvent):
    type: Literal["position_update"] = "position_update"
    position: PositionResponse


class BalanceUpdate(WsEvent):
    type: Literal["balance_update"] = "balance_update"
    vault: VaultResponse


WsEventPayload = Annotated[
    Union[OrderbookSnapshot, OrderbookUpdate, TradeEvent, OrderUpdate, PositionUpdate, BalanceUpdate],
    Field(discriminator="type"),
]

_WS_EVENT_ADAPTER: TypeAdapter = TypeAdapter(WsEventPayload)


def _require_tag(data: Any, what: str) -> str:
    if not isinstance(data, dict):
        raise SerializationError(f"{what} must be a JSON object, got {type(data).__name__}")
    tag = data.get("type")
    if not isinstance(tag, str):
        raise SerializationError(f"{what} 'type' must be a string, got {type(tag).__name__}")
    return tag


def parse_ws_event(data: Any) -> WsEvent:
    """Decode a tag-discriminated event payload."""
    _require_tag(data, "Event payload")
    try:
        return _WS_EVENT_ADAPTER.validate_python(data)
    except PydanticValidationError as exc:
        raise SerializationError(f"Invalid event payload: {exc}") from exc


# ===== WebSocket: inbound frames =====


class WsResponse(_FrozenModel):
    type: str


class PongResponse(WsResponse):
    type: Literal["pong"] = "pong"


class SubscribedResponse(WsResponse):
    type: Literal["subscribed"] = "subscribed"
    channel: str


class UnsubscribedResponse(WsResponse):
    type: Literal["unsubscribed"] = "unsubscribed"
    channel: str


class EventResponse(WsResponse):
    type: Literal["event"] = "event"
    channel: str
    data: WsEventPayload


class ErrorResponse(WsResponse):
    type: Literal["error"] = "error"
    message: str
    channel: Optional[str] = None


WsResponsePayload = Annotated[
    Union[PongResponse, SubscribedResponse, UnsubscribedResponse, EventResponse, ErrorResponse],
    Field(discriminator="type"),
]

_WS_RESPONSE_ADAPTER: TypeAdapter = TypeAdapter(WsResponsePayload)


def parse_ws_response(text: Union[str, bytes]) -> WsResponse:
    """Decode one inbound websocket text frame."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Invalid JSON frame: {exc}") from exc
    tag = _require_tag(data, "Frame")
    if tag == "event":
        _require_tag(data.get("data"), "Event payload")
    try:
        return _WS_RESPONSE_ADAPTER.validate_python(data)
    except PydanticValidationError as exc:
        raise SerializationError(f"Invalid {tag!r} frame: {exc}") from exc


# ===== Request configuration =====


@dataclass
class RequestConfig:
    method: str = "GET"
    headers: Dict[str, str] = field(default_factory=dict)
    query: Optional[Dict[str, str]] = None
    body: Any = None
    auth_required: bool = False

    @classmethod
    def get(cls) -> "RequestConfig":
        return cls(method="GET")

    @classmethod
    def post(cls, body: Any) -> "RequestConfig":
        return cls(method="POST", body=_to_jsonable(body))

    @classmethod
    def put(cls, body: Any) -> "RequestConfig":
        return cls(method="PUT", body=_to_jsonable(body))

    @classmethod
    def delete(cls) -> "RequestConfig":
        return cls(method="DELETE")

    def with_auth(self) -> "RequestConfig":
        return dataclasses.replace(self, auth_required=True)

    def with_query(self, query: Dict[str, str]) -> "RequestConfig":
        return dataclasses.replace(self, query=dict(query))

    def with_header(self, key: str, value: str) -> "RequestConfig":
        return dataclasses.replace(self, headers={**self.headers, key: value})
