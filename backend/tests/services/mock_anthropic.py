"""Mock Anthropic Client — simulates the Messages API for Pulse agent tests.

Invariants:
    - _Block supports model_dump(exclude_none) matching Anthropic SDK Pydantic models
    - MockAnthropicClient sequences responses (one per create_message call)
    - A configured exception is raised instead of returned, so failure paths
      can be scripted in the same list as normal responses

Design Decisions:
    - Flat mock classes (no inheritance): simple, explicit, easy to debug
    - _Block stores raw dict for model_dump: avoids maintaining parallel attribute + dict structures
"""


# -- Mock Anthropic SDK objects ------------------------------------------------


class _Block:
    """Mock content block with model_dump support (text, tool_use)."""

    def __init__(self, **kwargs):
        self._data = kwargs
        for k, v in kwargs.items():
            setattr(self, k, v)

    def model_dump(self, exclude_none=False):
        d = dict(self._data)
        if exclude_none:
            d = {k: v for k, v in d.items() if v is not None}
        return d

    def __repr__(self):
        return f"_Block({self._data})"


class _Usage:
    def __init__(self, input_tokens=100, output_tokens=50):
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens


class _Message:
    """Mock Message returned by create_message."""

    def __init__(self, content, stop_reason="end_turn", input_tokens=100, output_tokens=50):
        self.content = content
        self.stop_reason = stop_reason
        self.usage = _Usage(input_tokens, output_tokens)


class MockAnthropicClient:
    """Replaces ResilientAnthropicClient. Sequences pre-configured responses."""

    def __init__(self, responses):
        self._responses = responses
        self._idx = 0
        self.calls = []

    async def create_message(self, **kwargs):
        self.calls.append(kwargs)
        if self._idx >= len(self._responses):
            raise RuntimeError(
                f"MockAnthropicClient: no response at index {self._idx} "
                f"(configured {len(self._responses)})",
            )
        response = self._responses[self._idx]
        self._idx += 1
        if isinstance(response, Exception):
            raise response
        return response


# -- Builder helpers -----------------------------------------------------------


def text_response(text, stop_reason="end_turn", tokens=(100, 50)):
    return _Message([_Block(type="text", text=text)], stop_reason, *tokens)


def tool_response(name, tool_input, stop_reason="tool_use", tokens=(150, 80)):
    """Build a single tool_use response."""
    tool_block = _Block(
        type="tool_use", id=f"toolu_{name}_test", name=name, input=tool_input,
    )
    return _Message([tool_block], stop_reason, *tokens)


def mixed_response(text, tools, stop_reason="tool_use", tokens=(200, 120)):
    """Text plus several tool_use blocks in one turn."""
    content = [_Block(type="text", text=text)]
    for t in tools:
        content.append(_Block(
            type="tool_use", id=f"toolu_{t['name']}_test",
            name=t["name"], input=t["input"],
        ))
    return _Message(content, stop_reason, *tokens)
