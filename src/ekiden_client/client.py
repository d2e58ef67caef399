# src/ekiden_client/client.py

import logging
from typing import List, Optional

from ekiden_client.auth import Auth
from ekiden_client.config import EkidenConfig
from ekiden_client.connection.rest_client import EkidenRESTClient
from ekiden_client.crypto import validate_address
from ekiden_client.logging_config import configure_logging, structured_log_extra
from ekiden_client.types import (
    AuthorizeResponse,
    CandleResponse,
    DepositResponse,
    FillResponse,
    FundingRateResponse,
    GetUserLeverageParams,
    LeverageResponse,
    ListCandlesParams,
    ListDepositsParams,
    ListFillsParams,
    ListFundingRatesParams,
    ListMarketsParams,
    ListOrdersParams,
    ListPositionsParams,
    ListVaultsParams,
    ListWithdrawsParams,
    MarketResponse,
    OrderResponse,
    OrderSide,
    Pagination,
    PortfolioResponse,
    PositionResponse,
    RequestConfig,
    SendIntentParams,
    SendIntentResponse,
    SetUserLeverageParams,
    VaultResponse,
    WithdrawResponse,
    WsEvent,
    parse_list,
)
from ekiden_client.ws.broadcast import EventReceiver
from ekiden_client.ws.client import WebSocketClient

logger = logging.getLogger(__name__)


class EkidenClient:
    """
    High-level entry point: REST endpoints through :class:`EkidenRESTClient`
    and streaming through one shared :class:`WebSocketClient`.

    REST calls are blocking. Websocket calls are coroutines and must run on the
    event loop that owns the connection.
    """

    def __init__(self, config: Optional[EkidenConfig] = None, rest_client: Optional[EkidenRESTClient] = None):
        self.config = config or EkidenConfig()
        self._rest = rest_client or EkidenRESTClient(self.config)
        self._ws = WebSocketClient(self.config.websocket_url(), capacity=self.config.ws_capacity)

    @classmethod
    def default_config(cls) -> "EkidenClient":
        return cls(EkidenConfig())

    @classmethod
    def production(cls) -> "EkidenClient":
        return cls(EkidenConfig.production())

    @classmethod
    def staging(cls) -> "EkidenClient":
        return cls(EkidenConfig.staging())

    @classmethod
    def local(cls) -> "EkidenClient":
        return cls(EkidenConfig.local())

    # ===== Authentication =====

    @property
    def auth(self) -> Auth:
        return self._rest.auth

    def set_private_key(self, private_key: str) -> None:
        self._rest.auth = self._rest.auth.with_private_key(private_key)

    def set_token(self, token: str) -> None:
        self._rest.auth.set_token(token)

    def token(self) -> Optional[str]:
        return self._rest.auth.token()

    def public_key(self) -> Optional[str]:
        return self._rest.auth.public_key()

    def is_authenticated(self) -> bool:
        return self._rest.auth.is_authenticated()

    def authorize(self) -> AuthorizeResponse:
        """Signs the authorize message, exchanges it for a token and stores the token."""
        params = self._rest.auth.generate_authorize_params()
        data = self._rest.request("authorize", RequestConfig.post(params))
        response = AuthorizeResponse.from_dict(data)
        self._rest.auth.process_authorize_response(response)
        logger.info(
            "Successfully authenticated with Ekiden API",
            extra=structured_log_extra(event="authorized"),
        )
        return response

    # ===== Markets =====

    def get_markets(self, params: Optional[ListMarketsParams] = None) -> List[MarketResponse]:
        params = params or ListMarketsParams()
        config = RequestConfig.get().with_query(params.to_query_params())
        return parse_list(MarketResponse, self._rest.request("market_info", config))

    def get_market_by_address(self, market_addr: str) -> Optional[MarketResponse]:
        validate_address(market_addr)
        markets = self.get_markets(ListMarketsParams(market_addr=market_addr))
        return markets[0] if markets else None

    def get_market_by_symbol(self, symbol: str) -> Optional[MarketResponse]:
        markets = self.get_markets(ListMarketsParams(symbol=symbol))
        return markets[0] if markets else None

    # ===== Orders and fills =====

    def get_orders(self, params: ListOrdersParams) -> List[OrderResponse]:
        validate_address(params.market_addr)
        config = RequestConfig.get().with_query(params.to_query_params())
        return parse_list(OrderResponse, self._rest.request("orders", config))

    def get_orders_by_side(
        self, market_addr: str, side: OrderSide, pagination: Optional[Pagination] = None
    ) -> List[OrderResponse]:
        params = ListOrdersParams(
            market_addr=market_addr,
            side=OrderSide(side).value,
            pagination=pagination or Pagination(),
        )
        return self.get_orders(params)

    def get_fills(self, params: ListFillsParams) -> List[FillResponse]:
        validate_address(params.market_addr)
        config = RequestConfig.get().with_query(params.to_query_params())
        return parse_list(FillResponse, self._rest.request("fills", config))

    def get_recent_fills(self, market_addr: str, limit: Optional[int] = None) -> List[FillResponse]:
        params = ListFillsParams(market_addr=market_addr, pagination=Pagination(limit=limit, offset=0))
        return self.get_fills(params)

    # ===== User (authenticated) =====

    def get_user_vaults(self, params: Optional[ListVaultsParams] = None) -> List[VaultResponse]:
        params = params or ListVaultsParams()
        config = RequestConfig.get().with_query(params.to_query_params()).with_auth()
        return parse_list(VaultResponse, self._rest.request("user/vaults", config))

    def get_all_user_vaults(self) -> List[VaultResponse]:
        return self.get_user_vaults(ListVaultsParams())

    def get_user_positions(self, params: Optional[ListPositionsParams] = None) -> List[PositionResponse]:
        params = params or ListPositionsParams()
        config = RequestConfig.get().with_query(params.to_query_params()).with_auth()
        return parse_list(PositionResponse, self._rest.request("user/positions", config))

    def get_user_positions_by_market(self, market_addr: str) -> List[PositionResponse]:
        validate_address(market_addr)
        return self.get_user_positions(ListPositionsParams(market_addr=market_addr))

    def get_all_user_positions(self) -> List[PositionResponse]:
        return self.get_user_positions(ListPositionsParams())

    def get_user_leverage(self, market_addr: str) -> LeverageResponse:
        validate_address(market_addr)
        params = GetUserLeverageParams(market_addr=market_addr)
        config = RequestConfig.get().with_query(params.to_query_params()).with_auth()
        return LeverageResponse.from_dict(self._rest.request("user/leverage", config))

    def set_user_leverage(self, market_addr: str, leverage: int) -> LeverageResponse:
        validate_address(market_addr)
        params = SetUserLeverageParams(market_addr=market_addr, leverage=leverage)
        config = RequestConfig.post(params).with_auth()
        return LeverageResponse.from_dict(self._rest.request("user/leverage", config))

    def get_user_portfolio(self) -> PortfolioResponse:
        config = RequestConfig.get().with_auth()
        return PortfolioResponse.from_dict(self._rest.request("user/portfolio", config))

    def send_intent(self, params: SendIntentParams) -> SendIntentResponse:
        config = RequestConfig.post(params).with_auth()
        return SendIntentResponse.from_dict(self._rest.request("user/intent", config))

    # ===== Deposits and withdrawals =====

    def get_deposits(self, params: Optional[ListDepositsParams] = None) -> List[DepositResponse]:
        params = params or ListDepositsParams()
        config = RequestConfig.get().with_query(params.to_query_params())
        return parse_list(DepositResponse, self._rest.request("deposits", config))

    def get_user_deposits(self, user_addr: str) -> List[DepositResponse]:
        validate_address(user_addr)
        return self.get_deposits(ListDepositsParams(user_addr=user_addr))

    def get_withdrawals(self, params: Optional[ListWithdrawsParams] = None) -> List[WithdrawResponse]:
        params = params or ListWithdrawsParams()
        config = RequestConfig.get().with_query(params.to_query_params())
        return parse_list(WithdrawResponse, self._rest.request("withdraws", config))

    def get_user_withdrawals(self, user_addr: str) -> List[WithdrawResponse]:
        validate_address(user_addr)
        return self.get_withdrawals(ListWithdrawsParams(user_addr=user_addr))

    # ===== Candles and funding =====

    def get_candles(self, params: ListCandlesParams) -> List[CandleResponse]:
        validate_address(params.market_addr)
        config = RequestConfig.get().with_query(params.to_query_params())
        return parse_list(CandleResponse, self._rest.request("candles", config))

    def get_recent_candles(self, market_addr: str, interval: str, limit: Optional[int] = None) -> List[CandleResponse]:
        params = ListCandlesParams(
            market_addr=market_addr,
            interval=interval,
            pagination=Pagination(limit=limit, offset=0),
        )
        return self.get_candles(params)

    def get_funding_rates(self, params: ListFundingRatesParams) -> List[FundingRateResponse]:
        validate_address(params.market_addr)
        config = RequestConfig.get().with_query(params.to_query_params())
        return parse_list(FundingRateResponse, self._rest.request("funding_rate", config))

    def get_current_funding_rate(self, market_addr: str) -> Optional[FundingRateResponse]:
        params = ListFundingRatesParams(market_addr=market_addr, pagination=Pagination(limit=1, offset=0))
        rates = self.get_funding_rates(params)
        return rates[0] if rates else None

    # ===== WebSocket =====

    @property
    def websocket(self) -> WebSocketClient:
        return self._ws

    async def connect_websocket(self) -> None:
        await self._ws.connect()

    async def disconnect_websocket(self) -> None:
        await self._ws.disconnect()

    def is_websocket_connected(self) -> bool:
        return self._ws.is_connected()

    async def subscribe_orderbook(self, market_addr: str) -> EventReceiver[WsEvent]:
        validate_address(market_addr)
        return await self._ws.subscribe_orderbook(market_addr)

    async def subscribe_trades(self, market_addr: str) -> EventReceiver[WsEvent]:
        validate_address(market_addr)
        return await self._ws.subscribe_trades(market_addr)

    async def subscribe_user(self, user_addr: str) -> EventReceiver[WsEvent]:
        validate_address(user_addr)
        return await self._ws.subscribe_user(user_addr)

    async def subscribe_candles(self, market_addr: str, interval: str) -> EventReceiver[WsEvent]:
        validate_address(market_addr)
        return await self._ws.subscribe_candles(market_addr, interval)

    async def unsubscribe(self, channel: str) -> None:
        await self._ws.unsubscribe(channel)

    def __repr__(self) -> str:
        return f"EkidenClient(base_url={self.config.base_url!r}, auth={self._rest.auth!r})"


class EkidenClientBuilder:
    """Collects configuration and credentials, then builds an :class:`EkidenClient`."""

    def __init__(self) -> None:
        self._config = EkidenConfig()
        self._private_key: Optional[str] = None
        self._token: Optional[str] = None

    def config(self, config: EkidenConfig) -> "EkidenClientBuilder":
        self._config = config
        return self

    def base_url(self, base_url: str) -> "EkidenClientBuilder":
        self._config = EkidenConfig.new(base_url)
        return self

    def production(self) -> "EkidenClientBuilder":
        self._config = EkidenConfig.production()
        return self

    def staging(self) -> "EkidenClientBuilder":
        self._config = EkidenConfig.staging()
        return self

    def local(self) -> "EkidenClientBuilder":
        self._config = EkidenConfig.local()
        return self

    def private_key(self, private_key: str) -> "EkidenClientBuilder":
        self._private_key = private_key
        return self

    def token(self, token: str) -> "EkidenClientBuilder":
        self._token = token
        return self

    def timeout(self, timeout: float) -> "EkidenClientBuilder":
        self._config = self._config.with_timeout(timeout)
        return self

    def user_agent(self, user_agent: str) -> "EkidenClientBuilder":
        self._config = self._config.with_user_agent(user_agent)
        return self

    def with_logging(self, enable: bool) -> "EkidenClientBuilder":
        self._config = self._config.with_logging(enable)
        return self

    def build(self) -> EkidenClient:
        if self._config.enable_logging:
            configure_logging()

        client = EkidenClient(self._config)
        if self._private_key is not None:
            client.set_private_key(self._private_key)
        if self._token is not None:
            client.set_token(self._token)
        return client

    def build_and_auth(self) -> EkidenClient:
        client = self.build()
        client.authorize()
        return client
