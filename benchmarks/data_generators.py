"""
Test data generators for partial JSON parsing benchmarks.

Creates documents shaped like the payloads that arrive incrementally:
- Tool call arguments and chat completion chunks
- Record arrays and nested configuration trees
- String-heavy content with escape sequences

Also cuts documents into truncated prefixes the way a stream delivers them.
"""

import json
import random
import string
from typing import Any

# Constants for random data generation
_INT_TYPE = 1
_FLOAT_TYPE = 2
_STRING_TYPE = 3
_BOOL_TYPE = 4
_NULL_TYPE = 5
_ESCAPE_PROBABILITY = 0.3


def generate_test_data(data_type: str) -> str:
    """Generates JSON test data based on specified type."""
    generators = {
        "tool_call": _generate_tool_call,
        "chat_completion": _generate_chat_completion,
        "record_array": _generate_record_array,
        "nested_config": _generate_nested_config,
        "string_heavy": _generate_string_heavy,
    }

    if data_type not in generators:
        raise ValueError(f"Unknown data type: {data_type}")

    return generators[data_type]()


def truncate(doc: str, fraction: float) -> str:
    """Cuts ``doc`` after ``fraction`` of its characters."""
    if not 0.0 < fraction <= 1.0:
        raise ValueError(f"fraction must be in (0, 1], got {fraction}")
    return doc[: max(1, int(len(doc) * fraction))]


def stream_prefixes(doc: str, chunk_size: int = 64) -> list[str]:
    """Returns every prefix a reader sees when ``doc`` arrives in chunks."""
    prefixes = [doc[:end] for end in range(chunk_size, len(doc), chunk_size)]
    prefixes.append(doc)
    return prefixes


def _generate_tool_call() -> str:
    """Generates a small function call payload (< 1KB)."""
    data = {
        "name": "search_flights",
        "arguments": {
            "origin": "SFO",
            "destination": "NRT",
            "depart": "2024-03-15",
            "passengers": random.randint(1, 4),
            "max_price": round(random.uniform(400.0, 2000.0), 2),
            "nonstop": random.choice([True, False]),
            "notes": f"Window seat, {_random_string(24)}",
        },
    }
    return json.dumps(data)


def _generate_chat_completion() -> str:
    """Generates a chat completion response with a long message body."""
    paragraphs = [
        " ".join(_random_string(random.randint(2, 9)) for _ in range(60))
        for _ in range(12)
    ]
    data = {
        "id": f"chatcmpl-{_random_string(24)}",
        "object": "chat.completion",
        "created": random.randint(1700000000, 1800000000),
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": "\n\n".join(paragraphs),
                },
                "finish_reason": None,
            }
        ],
        "usage": {
            "prompt_tokens": random.randint(10, 500),
            "completion_tokens": random.randint(100, 2000),
        },
    }
    return json.dumps(data)


def _generate_record_array() -> str:
    """Generates a large array of records with mixed value types."""
    array: list[Any] = []

    for i in range(200):
        choice = random.randint(1, 6)
        if choice == _INT_TYPE:
            array.append(random.randint(-1000, 1000))
        elif choice == _FLOAT_TYPE:
            array.append(round(random.uniform(-100.0, 100.0), 3))
        elif choice == _STRING_TYPE:
            array.append(_random_string(random.randint(5, 30)))
        elif choice == _BOOL_TYPE:
            array.append(random.choice([True, False]))
        elif choice == _NULL_TYPE:
            array.append(None)
        else:
            array.append(
                {
                    "index": i,
                    "label": _random_string(10),
                    "score": round(random.uniform(0, 100), 2),
                }
            )

    return json.dumps(array)


def _generate_nested_config() -> str:
    """Generates a configuration tree eight levels deep."""

    def create_section(depth: int) -> dict[str, Any]:
        if depth <= 0:
            return {"value": _random_string(10)}

        return {
            "level": depth,
            "enabled": random.choice([True, False]),
            "children": [create_section(depth - 1) for _ in range(3)],
            "defaults": create_section(depth - 1),
        }

    return json.dumps(create_section(8))


def _generate_string_heavy() -> str:
    """Generates JSON with many string escape sequences."""

    def create_escaped_string() -> str:
        chars = []
        for _ in range(50):
            if random.random() < _ESCAPE_PROBABILITY:
                chars.append(
                    random.choice(
                        ['\\"', "\\\\", "\\/", "\\n", "\\t", "\\u00e9"]
                    )
                )
            else:
                chars.append(
                    random.choice(string.ascii_letters + string.digits + " ")
                )
        return "".join(chars)

    # Raw escapes, so build the document text directly
    strings = ", ".join(f'"{create_escaped_string()}"' for _ in range(100))
    return f'{{"strings": [{strings}], "count": 100}}'


def _random_string(length: int) -> str:
    """Generates a random string of specified length."""
    return "".join(random.choices(string.ascii_letters, k=length))
