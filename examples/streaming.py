#!/usr/bin/env python3
"""
Streaming response example.

This example demonstrates how to print text as it arrives while the full
message is assembled, and how to cancel a stream that runs too long.

Usage:
    export ANTHROPIC_API_KEY="your-api-key"
    python examples/streaming.py
"""

import asyncio

from anthropic_messages import (
    MessageParam,
    MessageParams,
    MessagesClient,
    ModelID,
    StreamCancelledError,
    create_cancel_pair,
)


def print_chunk(token, chunk: bytes) -> None:
    print(chunk.decode("utf-8"), end="", flush=True)


async def main() -> None:
    """Run streaming example."""
    async with MessagesClient.create() as client:
        print("Streaming response:\n")
        print("-" * 50)

        message = await client.messages.create(
            MessageParams(
                model=ModelID.SONNET.value,
                system="You are a creative storyteller.",
                messages=[
                    MessageParam.user("Tell me a very short story about a robot learning to paint.")
                ],
                max_tokens=500,
                stream_func=print_chunk,
            )
        )

        print("\n" + "-" * 50)
        if message is not None:
            print(f"[Stream ended: {message.stop_reason}]")
            print(f"[Tokens: {message.usage.input_tokens} in, {message.usage.output_tokens} out]")

        # Give up on a stream after two seconds
        print("\n\nStreaming with a deadline:")
        print("-" * 50)

        _handle, token = create_cancel_pair(timeout=2.0)
        try:
            await client.messages.create(
                MessageParams(
                    model=ModelID.HAIKU.value,
                    messages=[MessageParam.user("Count slowly from 1 to 500.")],
                    max_tokens=2000,
                    stream_func=print_chunk,
                ),
                cancel_token=token,
            )
        except StreamCancelledError as e:
            print(f"\n\n[Cancelled: {e.reason}]")


if __name__ == "__main__":
    asyncio.run(main())
