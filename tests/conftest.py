import pytest

from model_monitor.upstream_client import UpstreamClient
from tests.fakes import BASE_URL, FakeClock, FakeUpstream


@pytest.fixture
def upstream():
    return FakeUpstream(["gpt-4", "claude-3-haiku", "whisper-1"])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def client(upstream):
    client = UpstreamClient(BASE_URL, "sk-test", connect_retries=0, transport=upstream.transport())
    await client.start()
    yield client
    await client.stop()
