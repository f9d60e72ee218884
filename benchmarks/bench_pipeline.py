#!/usr/bin/env python3
"""
Stream assembly performance benchmarks.

Measures throughput of decoding, folding and full assembly. Per-delta cost
should stay flat as the response grows.
"""

import asyncio
import json
import time
from typing import Any

from anthropic_messages.client import assemble_stream
from anthropic_messages.pipeline import MessageBuilder, SSEDecoder


def generate_sse_chunks(count: int, tool_deltas: int = 0) -> list[bytes]:
    """Generate a framed text response with ``count`` text deltas."""
    events: list[dict[str, Any]] = [
        {
            "type": "message_start",
            "message": {
                "id": "msg_bench",
                "type": "message",
                "role": "assistant",
                "model": "claude-3-haiku-20240307",
                "usage": {"input_tokens": 10},
            },
        },
        {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
    ]
    events.extend(
        {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": f"Token{i} "}}
        for i in range(count)
    )
    if tool_deltas:
        events.append(
            {
                "type": "content_block_start",
                "index": 1,
                "content_block": {"type": "tool_use", "id": "toolu_1", "name": "bench", "input": {}},
            }
        )
        events.extend(
            {"type": "content_block_delta", "index": 1, "delta": {"type": "tool_use_delta", "input": {f"k{i}": i}}}
            for i in range(tool_deltas)
        )
    events.append(
        {"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": count}}
    )
    events.append({"type": "message_stop"})
    return [f"event: {e['type']}\ndata: {json.dumps(e)}\n\n".encode() for e in events]


async def benchmark_sse_decoder(iterations: int = 1000) -> dict[str, Any]:
    """Benchmark SSE decoder throughput."""
    chunks = generate_sse_chunks(iterations)
    decoder = SSEDecoder()

    async def byte_stream():
        for chunk in chunks:
            yield chunk

    start = time.perf_counter()
    events = [event async for event in decoder.decode(byte_stream())]
    elapsed = time.perf_counter() - start

    return {
        "name": "SSEDecoder",
        "iterations": iterations,
        "elapsed_seconds": elapsed,
        "throughput_eps": len(events) / elapsed,
        "latency_us": (elapsed / len(events)) * 1_000_000,
    }


async def benchmark_fold(iterations: int = 1000) -> dict[str, Any]:
    """Benchmark folding already-decoded events."""
    decoder = SSEDecoder()
    events = [
        decoder.decode_line(line)
        for chunk in generate_sse_chunks(iterations, tool_deltas=iterations)
        for line in chunk.decode().split("\n")
    ]
    events = [e for e in events if e is not None]

    builder = MessageBuilder()
    start = time.perf_counter()
    for event in events:
        builder.fold(event)
    elapsed = time.perf_counter() - start

    return {
        "name": "MessageBuilder.fold",
        "iterations": iterations,
        "elapsed_seconds": elapsed,
        "throughput_eps": len(events) / elapsed,
        "latency_us": (elapsed / len(events)) * 1_000_000,
    }


async def benchmark_full_assembly(iterations: int = 1000) -> dict[str, Any]:
    """Benchmark full stream assembly with a sink attached."""
    chunks = generate_sse_chunks(iterations)
    received = 0

    def sink(token: Any, chunk: bytes) -> None:
        nonlocal received
        received += 1

    async def byte_stream():
        for chunk in chunks:
            yield chunk

    start = time.perf_counter()
    await assemble_stream(byte_stream(), sink=sink)
    elapsed = time.perf_counter() - start

    return {
        "name": "FullAssembly",
        "iterations": iterations,
        "elapsed_seconds": elapsed,
        "throughput_eps": received / elapsed,
        "latency_us": (elapsed / received) * 1_000_000,
    }


async def run_benchmarks() -> None:
    """Run all benchmarks and print results."""
    print("=" * 60)
    print("Stream Assembly Benchmarks")
    print("=" * 60)
    print()

    benchmarks = [
        benchmark_sse_decoder,
        benchmark_fold,
        benchmark_full_assembly,
    ]

    for bench in benchmarks:
        for iterations in (1000, 10000):
            result = await bench(iterations)
            print(f"{result['name']} ({iterations} deltas):")
            print(f"  Elapsed: {result['elapsed_seconds']:.4f}s")
            print(f"  Throughput: {result['throughput_eps']:.0f} events/sec")
            print(f"  Latency: {result['latency_us']:.2f} µs/item")
            print()


if __name__ == "__main__":
    asyncio.run(run_benchmarks())
