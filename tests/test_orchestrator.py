import asyncio

import pytest

from videoworker import metrics
from videoworker.errors import (
    ConfigurationError,
    CreditCheckDenied,
    ProviderError,
    ValidationError,
)
from videoworker.generation.client import GenerationClient
from videoworker.generation.models import GenerationStatus
from videoworker.generation.orchestrator import VideoGenerationService


def test_success(service, provider, make_request):
    provider.queue_success(url="https://cdn.test/cat.mp4", cost=0.25)
    seen = []

    result = asyncio.run(service.generate(make_request(), on_update=lambda r: seen.append(r.status)))

    assert result.status == GenerationStatus.COMPLETED
    assert result.output_url == "https://cdn.test/cat.mp4"
    assert result.cost_usd == 0.25
    assert result.attempts == 1
    assert result.actual_duration == 5.0
    assert result.provider_task_id == provider.submitted[0]["taskUUID"]
    assert seen == [GenerationStatus.SUBMITTED, GenerationStatus.POLLING, GenerationStatus.COMPLETED]
    assert provider.submit_count == 1


def test_requested_duration_is_clamped_before_submit(service, provider, make_request):
    result = asyncio.run(service.generate(make_request(model_id="klingai-2.5-turbo-pro", duration=7)))
    assert provider.submitted[0]["duration"] == 5
    assert result.actual_duration == 5.0


def test_provider_reported_duration_wins(service, provider, make_request):
    provider.queue_success(duration=5.2)
    result = asyncio.run(service.generate(make_request()))
    assert result.actual_duration == 5.2


def test_retry_then_success(service, provider, sleeps, make_request):
    provider.queue_failure("overloaded")
    provider.queue_success(cost=0.3)

    result = asyncio.run(service.generate(make_request()))

    assert result.succeeded
    assert result.attempts == 2
    assert sleeps.delays == [10]
    assert result.error_message is None
    # each attempt is a new provider task
    assert provider.submitted[0]["taskUUID"] != provider.submitted[1]["taskUUID"]


def test_exhausted_retries_fail(service, provider, sleeps, make_request):
    provider.queue_failure("first")
    provider.queue_failure("second", cost=0.02)

    result = asyncio.run(service.generate(make_request()))

    assert result.status == GenerationStatus.FAILED
    assert result.attempts == 2
    assert result.error_message == "second"
    assert result.error_type == "provider"
    assert result.cost_usd == 0.02
    assert provider.submit_count == 2
    assert metrics.get_counter("generations.failed") == 1
    assert metrics.get_counter("generations.retried") == 1


def test_backoff_doubles(registry, client, sleeps, provider, make_request):
    service = VideoGenerationService(registry, client, max_retries=3, retry_base_delay=10, sleep=sleeps)
    for _ in range(4):
        provider.queue_failure()
    result = asyncio.run(service.generate(make_request()))
    assert result.attempts == 4
    assert sleeps.delays == [10, 20, 40]


def test_timeout_is_retried_and_reported(registry, provider, sleeps, fake_clock, make_request):
    client = GenerationClient(provider, poll_interval=0, timeout=5, clock=fake_clock)
    service = VideoGenerationService(registry, client, max_retries=1, retry_base_delay=10, sleep=sleeps)
    provider.queue_hang()
    provider.queue_hang()

    result = asyncio.run(service.generate(make_request()))

    assert result.status == GenerationStatus.TIMED_OUT
    assert result.error_type == "timeout"
    assert result.attempts == 2
    assert result.output_url is None


def test_non_retryable_provider_error(service, provider, sleeps, make_request):
    provider.queue_submit_error(ProviderError("Invalid API key", retryable=False))
    result = asyncio.run(service.generate(make_request()))
    assert result.status == GenerationStatus.FAILED
    assert result.attempts == 1
    assert sleeps.delays == []


def test_unknown_model_never_reaches_network(service, provider, make_request):
    with pytest.raises(ConfigurationError):
        asyncio.run(service.generate(make_request(model_id="nonexistent-model")))
    assert provider.submit_count == 0


def test_validation_error_never_retried(service, provider, sleeps, make_request):
    with pytest.raises(ValidationError) as exc:
        asyncio.run(service.generate(make_request(aspect_ratio="2:1")))
    assert exc.value.field == "aspect_ratio"
    assert provider.submit_count == 0
    assert sleeps.delays == []


def test_credit_check_denied(registry, client, provider, make_request):
    async def deny(request):
        return False

    service = VideoGenerationService(registry, client, credit_check=deny)
    with pytest.raises(CreditCheckDenied):
        asyncio.run(service.generate(make_request()))
    assert provider.submit_count == 0


def test_credit_check_skipped_by_flag(registry, client, provider, make_request):
    checked = []

    async def deny(request):
        checked.append(request.job_id)
        return False

    service = VideoGenerationService(registry, client, credit_check=deny)
    result = asyncio.run(service.generate(make_request(skip_credit_check=True)))
    assert result.succeeded
    assert checked == []


def test_cancelled_before_submit(service, provider, make_request):
    event = asyncio.Event()
    event.set()
    result = asyncio.run(service.generate(make_request(), cancel_event=event))
    assert result.status == GenerationStatus.FAILED
    assert result.error_type == "cancelled"
    assert result.attempts == 0
    assert provider.submit_count == 0


def test_cancel_during_retry_backoff(registry, provider, make_request):
    async def go():
        event = asyncio.Event()

        async def slow_sleep(delay):
            event.set()
            await asyncio.sleep(60)

        client = GenerationClient(provider, poll_interval=0, timeout=30)
        service = VideoGenerationService(registry, client, max_retries=1, retry_base_delay=10, sleep=slow_sleep)
        provider.queue_failure()
        return await asyncio.wait_for(service.generate(make_request(), cancel_event=event), timeout=5)

    result = asyncio.run(go())
    assert result.error_type == "cancelled"
    assert provider.submit_count == 1


def test_builder_warnings_recorded(service, provider, make_request):
    result = asyncio.run(service.generate(make_request(
        model_id="veo-3.0",
        duration=8,
        start_frame_url="https://cdn.test/a.png",
        end_frame_url="https://cdn.test/b.png",
    )))
    assert result.succeeded
    assert len(result.warnings) == 1
    assert provider.submitted[0]["frameImages"] == [{"inputImage": "https://cdn.test/a.png", "frame": "first"}]


def test_task_cancelled_during_backoff_stops_the_sleep(registry, provider, make_request):
    started, stopped = [], []

    async def slow_sleep(delay):
        started.append(delay)
        try:
            await asyncio.sleep(60)
        except asyncio.CancelledError:
            stopped.append(delay)
            raise

    async def go():
        client = GenerationClient(provider, poll_interval=0, timeout=30)
        service = VideoGenerationService(registry, client, max_retries=1, retry_base_delay=10, sleep=slow_sleep)
        provider.queue_failure()
        task = asyncio.ensure_future(service.generate(make_request(), cancel_event=asyncio.Event()))
        while not started:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        # checked before asyncio.run tears down leftover tasks
        assert stopped == [10]

    asyncio.run(go())
