import pytest

from videoworker import metrics
from videoworker.generation.client import GenerationClient
from videoworker.generation.models import GenerationRequest
from videoworker.generation.orchestrator import VideoGenerationService
from videoworker.generation.registry import load_default_registry
from videoworker.generation.scheduler import BatchScheduler

HANG = object()


class FakeProvider:
    """
    Stands in for RunwareClient. Each submit consumes the next planned
    outcome; with nothing planned, tasks succeed at $0.10.
    """

    def __init__(self):
        self.plan = []
        self.submitted = []
        self.polls = 0
        self._tasks = {}

    def queue_success(self, url=None, cost=0.10, duration=None):
        item = {"status": "success", "videoURL": url or f"https://cdn.test/v{len(self.plan)}.mp4", "cost": cost}
        if duration is not None:
            item["duration"] = duration
        self.plan.append(item)

    def queue_failure(self, message="provider exploded", cost=None):
        self.plan.append({"status": "error", "error": message, "cost": cost})

    def queue_submit_error(self, exc):
        self.plan.append(exc)

    def queue_hang(self):
        self.plan.append(HANG)

    @property
    def submit_count(self):
        return len(self.submitted)

    async def submit_task(self, body):
        self.submitted.append(body)
        step = self.plan.pop(0) if self.plan else {
            "status": "success", "videoURL": "https://cdn.test/default.mp4", "cost": 0.10,
        }
        if isinstance(step, Exception):
            raise step
        self._tasks[body["taskUUID"]] = step
        return {"taskUUID": body["taskUUID"], "status": "processing"}

    async def get_response(self, task_id):
        self.polls += 1
        step = self._tasks[task_id]
        if step is HANG:
            return {"taskUUID": task_id, "status": "processing"}
        return {"taskUUID": task_id, **step}


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class FakeClock:
    """Monotonic clock that moves forward `step` seconds per reading."""

    def __init__(self, step=1.0):
        self.now = 0.0
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


@pytest.fixture(autouse=True)
def _clean_metrics():
    metrics.reset()
    yield


@pytest.fixture(scope="session")
def registry():
    return load_default_registry()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def client(provider):
    return GenerationClient(provider, poll_interval=0, timeout=30)


@pytest.fixture
def service(registry, client, sleeps):
    return VideoGenerationService(registry, client, max_retries=1, retry_base_delay=10, sleep=sleeps)


@pytest.fixture
def scheduler(service, sleeps):
    return BatchScheduler(service, item_delay=1.0, max_per_provider=2, sleep=sleeps)


@pytest.fixture
def make_request():
    def _make(**overrides):
        fields = {
            "job_id": "job-1",
            "model_id": "seedance-1.0-pro",
            "prompt": "A cat playing a tiny piano in a sunlit kitchen",
            "duration": 5,
            "aspect_ratio": "16:9",
            "resolution": "720p",
        }
        fields.update(overrides)
        return GenerationRequest(**fields)

    return _make


@pytest.fixture
def fake_clock():
    return FakeClock()
