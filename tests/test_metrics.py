"""Tests for Prometheus metrics recorded by the queue."""

import asyncio


async def ok(payload):
    return payload


async def broken(payload):
    raise RuntimeError("quota exceeded")


async def hang(payload):
    await asyncio.Event().wait()


def sample(collector, name, **labels):
    return collector.registry.get_sample_value(name, labels) or 0.0


async def test_outcomes_are_counted_per_queue(make_queue, collector, gate):
    queue = make_queue(name="bgremove", timeout_seconds=0.05)

    async def blocker(payload):
        await gate.wait()

    queue.submit("held", None, blocker)
    queue.submit("cancel-me", None, ok)
    queue.cancel("cancel-me")
    gate.set()
    queue.submit("ok", None, ok)
    queue.submit("broken", None, broken)
    queue.submit("hang", None, hang)
    await queue.join()

    assert sample(collector, "genqueue_jobs_submitted_total", queue="bgremove") == 5
    assert sample(collector, "genqueue_jobs_finished_total", queue="bgremove", status="completed") == 2
    assert sample(collector, "genqueue_jobs_finished_total", queue="bgremove", status="failed") == 2
    assert sample(collector, "genqueue_jobs_finished_total", queue="bgremove", status="cancelled") == 1
    assert sample(collector, "genqueue_job_timeouts_total", queue="bgremove") == 1
    assert sample(collector, "genqueue_backlog_size", queue="bgremove") == 0
    assert sample(collector, "genqueue_job_execution_seconds_count", queue="bgremove") == 4


async def test_metrics_text_lists_queue_samples(make_queue, collector):
    queue = make_queue(name="tts")
    queue.submit("one", None, ok)
    await queue.join()

    text = collector.get_metrics()
    assert 'genqueue_jobs_submitted_total{queue="tts"} 1.0' in text
    assert "genqueue_jobs_finished_total" in text
