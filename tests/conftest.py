from datetime import datetime, timedelta

import pytest

from biz_agent.context import ConversationContext, IdSequence

START = datetime(2026, 10, 19, 10, 30, 0)


class Clock:
    def __init__(self, start=START):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class FakeNLU:
    """Returns queued payloads in order; queued exceptions are raised."""

    def __init__(self):
        self.responses = []
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)
        return self

    def __call__(self, text):
        self.calls.append(text)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def ctx(clock):
    return ConversationContext(clock=clock, ids=IdSequence(lambda: 1_790_000_000_000))


@pytest.fixture
def nlu():
    return FakeNLU()


@pytest.fixture
def events(ctx):
    seen = []
    ctx.subscribe(lambda name, obj: seen.append((name, obj)))
    return seen
