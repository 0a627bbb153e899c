"""Binance REST API constants."""

# Versions
PUBLIC_VERSION = "1"
SIGNED_VERSION = "3"
USER_DATA_STREAM_VERSION = "1"

# Methods
GET = "GET"
POST = "POST"
PUT = "PUT"
DELETE = "DELETE"

API_KEY_HEADER = "X-MBX-APIKEY"

# REST API Endpoints
ENDPOINTS = {
    # Public
    "ping": "ping",
    "time": "time",
    "order_book": "depth",
    "aggregated_trades": "aggTrades",
    "klines": "klines",
    "ticker_24h": "ticker/24hr",
    "all_prices": "ticker/allPrices",
    "all_book_prices": "ticker/allBookTickers",
    # Signed
    "open_orders": "openOrders",
    "all_orders": "allOrders",
    "order": "order",
    "test_order": "order/test",
    "account": "account",
    "my_trades": "myTrades",
    # User data stream
    "user_data_stream": "userDataStream",
}

# WebSocket Streams
WS_STREAMS = {
    "kline": "{symbol}@kline_{interval}",
    "depth": "{symbol}@depth",
    "agg_trade": "{symbol}@aggTrade",
}

# User data stream event markers
ACCOUNT_UPDATE_EVENT = "outboundAccountInfo"
ORDER_UPDATE_EVENT = "executionReport"
