import pytest


class SleepRecorder:
    """Reemplazo de asyncio.sleep que registra las esperas sin dormir."""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return SleepRecorder()
