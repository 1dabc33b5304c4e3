# examples/01_basic_usage.py
"""
Базовое использование prom-request.

Запуск:
    python examples/01_basic_usage.py
"""

import asyncio

import prom_request
from prom_request import ConnectionError, LoggingConfig, ResponseError


async def main():
    prom_request.configure_logging(LoggingConfig.create(level="INFO"))

    print("\n=== GET ===")
    response = await prom_request.get(
        "https://jsonplaceholder.typicode.com/posts/1", json=True
    )
    print(f"Status: {response.status_code}")
    print(f"Title: {response.body['title']}")

    print("\n=== POST с JSON телом ===")
    response = await prom_request.post(
        "https://jsonplaceholder.typicode.com/posts",
        json={"title": "Test Post", "body": "This is a test", "userId": 1},
    )
    print(f"Created ID: {response.body['id']}")

    print("\n=== Раздельные таймауты ===")
    try:
        await prom_request.get("http://10.255.255.1", connect_timeout=200)
    except ConnectionError as e:
        print(f"{e.code} (connect={e.connect}): {e.message}")

    print("\n=== Ответ вне 2xx ===")
    try:
        await prom_request.get("https://jsonplaceholder.typicode.com/nope")
    except ResponseError as e:
        print(f"{e.status_code}: {e.message}")

    print("\n=== Streaming ===")
    async with prom_request.stream(url="https://jsonplaceholder.typicode.com/posts") as handle:
        size = 0
        async for chunk in handle:
            size += len(chunk)
    print(f"Received {size} bytes")


if __name__ == "__main__":
    asyncio.run(main())
