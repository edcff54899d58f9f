#!/usr/bin/env python3
"""
MCP server for pump.fun trading and Twitter operations.

Tools: token search, lifecycle listings (graduated / bonding), token info and
price, buy and sell on pump.fun, tweet search and posting. The Twitter tools
are only registered when the app-level API key/secret are configured.

Prompts: analyze_token, analyze_graduated_tokens, analyze_bonding_tokens.

Resources: token://graduated, token://bonding, token://{address} and, with
Twitter configured, twitter://search/{query}/{count}.

Wraps pumpfun_trading.py and twitter_api.py; every tool call goes through the
ToolRegistry, which turns any failure into an isError result.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path
from typing import Any, List
from urllib.parse import unquote, urlsplit

from dotenv import load_dotenv
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import (
    CallToolResult,
    GetPromptResult,
    Prompt,
    PromptArgument,
    PromptMessage,
    Resource,
    ResourceTemplate,
    TextContent,
    Tool,
    ToolAnnotations,
)

# Load .env from the server directory or its parent
SERVER_DIR = Path(__file__).resolve().parent
load_dotenv(SERVER_DIR / ".env")
load_dotenv(SERVER_DIR.parent / ".env")

from agentlink_config import AgentLinkConfig
from agentlink_errors import AgentLinkError, ConfigurationError
from agentlink_logging import configure_logging
from agentlink_types import Configured, Provider
from pumpfun_trading import DEFAULT_POOL, DEFAULT_PRIORITY_FEE, DEFAULT_SLIPPAGE, PumpFunTrading
from tool_registry import ToolHints, ToolParam, ToolRegistry, ToolSpec, render_payload
from twitter_api import TwitterAPI, twitter_provider_from_config

logger = logging.getLogger(__name__)

JSON_MIME = "application/json"


# ---------------------------------------------------------------------------
# Tool catalog
# ---------------------------------------------------------------------------

_TRADE_OPTIONS = {
    "slippage": ToolParam(
        "number",
        "Maximum acceptable slippage percentage (default: 1.0)",
        default=DEFAULT_SLIPPAGE,
    ),
    "priorityFee": ToolParam(
        "number",
        "Priority fee amount in SOL (default: 0.00001)",
        default=DEFAULT_PRIORITY_FEE,
    ),
    "pool": ToolParam(
        "string",
        "Trading pool to use: pump, raydium, pump-amm or auto (default: 'pump')",
        default=DEFAULT_POOL,
    ),
}

_PAGE_OPTIONS = {
    "limit": ToolParam("integer", "Number of tokens to return, 1-100 (default: 100)", default=100),
    "cursor": ToolParam("string", "Pagination cursor from a previous page"),
}

_WRITE_HINTS = dict(read_only=False, destructive=True, idempotent=False, open_world=True)


def build_registry(trading: PumpFunTrading, twitter: Provider[TwitterAPI]) -> ToolRegistry:
    """Register every tool the configuration allows."""
    registry = ToolRegistry()

    async def search_tokens(args: dict[str, Any]) -> Any:
        return await asyncio.to_thread(trading.search_tokens, args["query"])

    async def get_graduated_tokens(args: dict[str, Any]) -> Any:
        return await asyncio.to_thread(
            trading.get_graduated_tokens, args["limit"], args.get("cursor")
        )

    async def get_bonding_tokens(args: dict[str, Any]) -> Any:
        return await asyncio.to_thread(
            trading.get_bonding_tokens, args["limit"], args.get("cursor")
        )

    async def get_token_info(args: dict[str, Any]) -> Any:
        return await asyncio.to_thread(trading.get_token_info, args["address"])

    async def get_token_price(args: dict[str, Any]) -> Any:
        return await asyncio.to_thread(trading.get_token_price, args["address"])

    async def buy_token(args: dict[str, Any]) -> Any:
        return await asyncio.to_thread(
            trading.buy_token,
            args["address"],
            args["solAmount"],
            args["slippage"],
            args["priorityFee"],
            args["pool"],
        )

    async def sell_token(args: dict[str, Any]) -> Any:
        return await asyncio.to_thread(
            trading.sell_token,
            args["address"],
            args["tokenAmount"],
            args["slippage"],
            args["priorityFee"],
            args["pool"],
        )

    registry.register(
        ToolSpec(
            name="search_tokens",
            description="Search for tokens on Pump.fun by name or symbol",
            params={
                "query": ToolParam("string", "Search query for token name or symbol", required=True),
            },
            hints=ToolHints(title="Search Tokens"),
        ),
        search_tokens,
    )
    registry.register(
        ToolSpec(
            name="get_graduated_tokens",
            description="Get tokens that have graduated from the Pump.fun bonding curve",
            params=_PAGE_OPTIONS,
            hints=ToolHints(title="Get Graduated Tokens", open_world=True),
        ),
        get_graduated_tokens,
    )
    registry.register(
        ToolSpec(
            name="get_bonding_tokens",
            description="Get tokens still trading on the Pump.fun bonding curve",
            params=_PAGE_OPTIONS,
            hints=ToolHints(title="Get Bonding Tokens", open_world=True),
        ),
        get_bonding_tokens,
    )
    registry.register(
        ToolSpec(
            name="get_token_info",
            description="Get detailed information about a specific token",
            params={"address": ToolParam("string", "Token address", required=True)},
            hints=ToolHints(title="Get Token Info"),
        ),
        get_token_info,
    )
    registry.register(
        ToolSpec(
            name="get_token_price",
            description="Get current price of a specific token",
            params={"address": ToolParam("string", "Token address", required=True)},
            hints=ToolHints(title="Get Token Price"),
        ),
        get_token_price,
    )
    registry.register(
        ToolSpec(
            name="buy_token",
            description=(
                "Buy a token on Pump.fun with a specified amount of SOL. "
                "The transaction is submitted but not confirmed."
            ),
            params={
                "address": ToolParam("string", "Token address", required=True),
                "solAmount": ToolParam("number", "Amount of SOL to use for purchase", required=True),
                **_TRADE_OPTIONS,
            },
            hints=ToolHints(title="Buy Token", **_WRITE_HINTS),
        ),
        buy_token,
    )
    registry.register(
        ToolSpec(
            name="sell_token",
            description=(
                "Sell a specific amount of a token on Pump.fun. "
                "The transaction is submitted but not confirmed."
            ),
            params={
                "address": ToolParam("string", "Token address", required=True),
                "tokenAmount": ToolParam(
                    "string",
                    "Amount of tokens to sell (can be a number or '100%' to sell all)",
                    required=True,
                ),
                **_TRADE_OPTIONS,
            },
            hints=ToolHints(title="Sell Token", **_WRITE_HINTS),
        ),
        sell_token,
    )

    if isinstance(twitter, Configured):
        client = twitter.client

        async def search_tweets(args: dict[str, Any]) -> Any:
            return await asyncio.to_thread(
                client.search_tweets, args["query"], args["count"]
            )

        async def post_tweet(args: dict[str, Any]) -> Any:
            return await asyncio.to_thread(client.post_tweet, args["text"])

        registry.register(
            ToolSpec(
                name="search_tweets",
                description="Search for tweets based on a query",
                params={
                    "query": ToolParam("string", "Search query for tweets", required=True),
                    "count": ToolParam(
                        "integer", "Number of tweets to return, 1-100 (default: 10)", default=10
                    ),
                },
                hints=ToolHints(title="Search Tweets", open_world=True),
            ),
            search_tweets,
        )
        registry.register(
            ToolSpec(
                name="post_tweet",
                description="Post a new tweet",
                params={"text": ToolParam("string", "Text content of the tweet", required=True)},
                hints=ToolHints(title="Post Tweet", **_WRITE_HINTS),
            ),
            post_tweet,
        )

    return registry


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

PROMPTS: dict[str, tuple[str, list[PromptArgument], str]] = {
    "analyze_token": (
        "Analyze a token on Pump.fun",
        [PromptArgument(name="address", description="Token address to analyze", required=True)],
        "Please analyze this token with address {address}. Get the token information, "
        "and provide insights about its price, market cap, and trading volume if available.",
    ),
    "analyze_graduated_tokens": (
        "Analyze tokens that recently graduated from the Pump.fun bonding curve",
        [],
        "Please analyze the tokens that recently graduated from the Pump.fun bonding curve. "
        "Provide insights about their prices, liquidity, and fully diluted valuations if available.",
    ),
    "analyze_bonding_tokens": (
        "Analyze tokens still on the Pump.fun bonding curve",
        [],
        "Please analyze the tokens still trading on the Pump.fun bonding curve. "
        "Provide insights about their prices, liquidity, and bonding curve progress if available.",
    ),
}


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


class AgentLinkServer:
    """Binds the tool registry, prompts and resources to an MCP Server."""

    def __init__(
        self,
        config: AgentLinkConfig,
        trading: PumpFunTrading,
        twitter: Provider[TwitterAPI],
    ) -> None:
        self.config = config
        self.trading = trading
        self.twitter = twitter
        self.registry = build_registry(trading, twitter)

        self.app = Server(config.server_name, version=config.server_version)
        self.app.list_tools()(self.list_tools)
        self.app.call_tool(validate_input=False)(self.call_tool)
        self.app.list_prompts()(self.list_prompts)
        self.app.get_prompt()(self.get_prompt)
        self.app.list_resources()(self.list_resources)
        self.app.list_resource_templates()(self.list_resource_templates)
        self.app.read_resource()(self.read_resource)

    @classmethod
    def from_config(cls, config: AgentLinkConfig) -> AgentLinkServer:
        trading = PumpFunTrading.from_config(config)
        logger.info("PumpFun trading module initialized")
        if not trading.trading_enabled:
            logger.warning("WALLET_PRIVATE_KEY not provided; buy_token and sell_token are disabled")

        twitter = twitter_provider_from_config(config)
        if isinstance(twitter, Configured):
            logger.info("Twitter API initialized")
        else:
            logger.warning("Twitter API credentials not provided; Twitter tools are disabled")
        return cls(config, trading, twitter)

    # -- Tools --

    async def list_tools(self) -> List[Tool]:
        tools = []
        for spec in self.registry.specs():
            hints = spec.hints
            annotations = None
            if hints is not None:
                annotations = ToolAnnotations(
                    title=hints.title,
                    readOnlyHint=hints.read_only,
                    destructiveHint=hints.destructive,
                    idempotentHint=hints.idempotent,
                    openWorldHint=hints.open_world,
                )
            tools.append(
                Tool(
                    name=spec.name,
                    description=spec.description,
                    inputSchema=spec.input_schema(),
                    annotations=annotations,
                )
            )
        return tools

    async def call_tool(self, name: str, arguments: Any) -> CallToolResult:
        result = await self.registry.invoke(name, arguments)
        return CallToolResult(
            content=[TextContent(type="text", text=block.payload) for block in result.content],
            isError=result.is_error,
        )

    # -- Prompts --

    async def list_prompts(self) -> List[Prompt]:
        return [
            Prompt(name=name, description=description, arguments=arguments)
            for name, (description, arguments, _template) in PROMPTS.items()
        ]

    async def get_prompt(self, name: str, arguments: dict[str, str] | None) -> GetPromptResult:
        if name not in PROMPTS:
            raise ValueError(f"Unknown prompt: {name}")
        description, prompt_args, template = PROMPTS[name]
        arguments = arguments or {}
        for arg in prompt_args:
            if arg.required and not arguments.get(arg.name):
                raise ValueError(f"Missing required argument '{arg.name}' for prompt {name}.")
        text = template.format(**{arg.name: arguments.get(arg.name, "") for arg in prompt_args})
        return GetPromptResult(
            description=description,
            messages=[PromptMessage(role="user", content=TextContent(type="text", text=text))],
        )

    # -- Resources --

    async def list_resources(self) -> List[Resource]:
        return [
            Resource(
                uri="token://graduated",
                name="Graduated Tokens",
                description="Tokens that recently graduated from the Pump.fun bonding curve",
                mimeType=JSON_MIME,
            ),
            Resource(
                uri="token://bonding",
                name="Bonding Tokens",
                description="Tokens still trading on the Pump.fun bonding curve",
                mimeType=JSON_MIME,
            ),
        ]

    async def list_resource_templates(self) -> List[ResourceTemplate]:
        templates = [
            ResourceTemplate(
                uriTemplate="token://{address}",
                name="Token Info",
                description="Information about a token by address",
                mimeType=JSON_MIME,
            )
        ]
        if isinstance(self.twitter, Configured):
            templates.append(
                ResourceTemplate(
                    uriTemplate="twitter://search/{query}/{count}",
                    name="Tweet Search",
                    description="Recent tweets matching a query; count is optional",
                    mimeType=JSON_MIME,
                )
            )
        return templates

    async def read_resource(self, uri: Any) -> List[ReadResourceContents]:
        parts = urlsplit(str(uri))
        scheme = parts.scheme
        target = parts.netloc
        path = [unquote(piece) for piece in parts.path.split("/") if piece]

        if scheme == "token" and target and not path:
            if target in ("graduated", "bonding"):
                value = await asyncio.to_thread(self.trading.list_by_lifecycle_stage, target)
            else:
                value = await asyncio.to_thread(self.trading.get_token_info, target)
        elif scheme == "twitter" and target == "search" and 1 <= len(path) <= 2:
            if not isinstance(self.twitter, Configured):
                raise ValueError("Twitter API credentials are not configured.")
            try:
                count = int(path[1]) if len(path) == 2 else 10
            except ValueError as exc:
                raise ValueError(f"Invalid tweet count in {uri}") from exc
            value = await asyncio.to_thread(self.twitter.client.search_tweets, path[0], count)
        else:
            raise ValueError(f"Unknown resource: {uri}")

        return [ReadResourceContents(content=render_payload(value), mime_type=JSON_MIME)]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def serve(server: AgentLinkServer) -> None:
    async with stdio_server() as (read_stream, write_stream):
        await server.app.run(read_stream, write_stream, server.app.create_initialization_options())


async def run_until_signal(server: AgentLinkServer) -> int:
    """Serve until stdin closes or SIGINT/SIGTERM arrives."""
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    serve_task = asyncio.create_task(serve(server))
    stop_task = asyncio.create_task(stop.wait())
    done, _pending = await asyncio.wait(
        {serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
    )

    if stop_task in done:
        logger.info("Shutting down server...")
        serve_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await serve_task
        return 0

    stop_task.cancel()
    serve_task.result()
    return 0


def main() -> int:
    try:
        config = AgentLinkConfig.from_env()
    except ConfigurationError as exc:
        configure_logging()
        logger.error("Error starting server: %s", exc)
        return 1

    configure_logging(config.log_level, config.log_dir)
    logger.info("Starting AgentLink MCP Server")
    try:
        server = AgentLinkServer.from_config(config)
    except (AgentLinkError, ValueError) as exc:
        logger.error("Error starting server: %s", exc)
        return 1

    logger.info("AgentLink MCP Server started with %d tools", len(server.registry))
    try:
        return asyncio.run(run_until_signal(server))
    except Exception as exc:  # noqa: BLE001
        logger.error("Server stopped: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
