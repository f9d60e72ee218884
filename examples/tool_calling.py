#!/usr/bin/env python3
"""
Tool calling example.

This example demonstrates how to offer a tool to the model, run the
invocation it streams back, and return the result in a follow-up turn.

Usage:
    export ANTHROPIC_API_KEY="your-api-key"
    python examples/tool_calling.py
"""

import asyncio
import json
from typing import Any

from anthropic_messages import (
    ContentBlock,
    MessageParam,
    MessageParams,
    MessageRole,
    MessagesClient,
    ModelID,
    Tool,
)


# Simulated tool implementation
def get_stock_price(ticker: str, date: str | None = None) -> dict[str, Any]:
    """Simulate a closing price lookup."""
    prices = {"^GSPC": 4450.38, "^DJI": 34407.60}
    return {"ticker": ticker, "date": date or "latest", "close": prices.get(ticker)}


stock_tool = Tool(
    name="get_stock_price",
    description="Get the closing price of a stock or index",
    input_schema={
        "type": "object",
        "properties": {
            "ticker": {"type": "string", "description": "Ticker symbol, e.g. '^GSPC'"},
            "date": {"type": "string", "description": "Date as YYYY-MM-DD"},
        },
        "required": ["ticker"],
    },
)


async def main() -> None:
    """Run tool calling example."""
    history = [MessageParam.user("What did the S&P 500 close at on 2023-07-01?")]

    async with MessagesClient.create() as client:
        message = await client.messages.create(
            MessageParams(
                model=ModelID.SONNET.value,
                messages=history,
                tools=[stock_tool],
                stream_func=lambda token, chunk: print(chunk.decode(), end="", flush=True),
            )
        )
        if message is None or not message.has_tool_uses:
            print("\nNo tool call requested.")
            return

        results = []
        for call in message.tool_uses:
            print(f"\n-> {call.name}({json.dumps(call.input)})")
            output = get_stock_price(**call.input)
            results.append(ContentBlock.tool_result(call.id, json.dumps(output)))

        history.append(
            MessageParam.with_content(
                MessageRole.ASSISTANT,
                [ContentBlock.tool_use(c.id, c.name, c.input) for c in message.tool_uses],
            )
        )
        history.append(MessageParam.with_content(MessageRole.USER, results))

        final = await client.messages.create(
            MessageParams(model=ModelID.SONNET.value, messages=history, tools=[stock_tool])
        )
        if final is not None:
            print(final.text)


if __name__ == "__main__":
    asyncio.run(main())
