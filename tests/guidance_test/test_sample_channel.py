import asyncio

from turnguide.errors import ProviderError, ProviderErrorKind
from turnguide.models import NavigationError, NavState, ProgressUpdate, TransportMode
from turnguide.nav_config import NavConfig
from turnguide.sample_channel import NavigationTask

from conftest import sample_at


def _task(provider, events, queue_size=32):
    task = NavigationTask(provider, NavConfig(sample_queue_size=queue_size))
    task.machine.add_listener(events.append)
    return task


def _drain(task):
    task.close()
    asyncio.run(task.run())


def test_samples_processed_in_arrival_order(provider, route, events):
    task = _task(provider, events)
    task.start(route, TransportMode.DRIVING)
    provider.replay([sample_at(1), sample_at(2), sample_at(5)])

    # Nothing happens until the consumer runs
    assert events == []
    assert task.pending == 3

    _drain(task)
    assert [e.matched_index for e in events if isinstance(e, ProgressUpdate)] == [1, 2, 5]


def test_overflow_drops_oldest_samples(provider, route, events):
    task = _task(provider, events, queue_size=3)
    task.start(route, TransportMode.DRIVING)
    provider.replay([sample_at(0), sample_at(1), sample_at(2), sample_at(3), sample_at(5)])

    assert task.pending == 3
    assert task.dropped == 2

    _drain(task)
    assert [e.matched_index for e in events if isinstance(e, ProgressUpdate)] == [2, 3, 5]


def test_overflow_never_drops_provider_error(provider, route, events):
    task = _task(provider, events, queue_size=2)
    task.start(route, TransportMode.DRIVING)
    provider.emit(sample_at(0))
    provider.fail(ProviderError(ProviderErrorKind.TIMEOUT))
    provider.emit(sample_at(1))
    provider.emit(sample_at(2))

    _drain(task)
    assert [type(e) for e in events] == [NavigationError]
    assert events[0].kind == "timeout"
    assert task.machine.state is NavState.IDLE


def test_stop_discards_queued_samples(provider, route, events):
    task = _task(provider, events)
    task.start(route, TransportMode.DRIVING)
    provider.replay([sample_at(1), sample_at(2)])
    task.stop()
    task.stop()

    _drain(task)
    assert events == []
    assert task.machine.session is None


def test_samples_from_another_thread(provider, route, events):
    task = _task(provider, events)

    async def scenario():
        runner = asyncio.create_task(task.run())
        await asyncio.sleep(0)
        task.start(route, TransportMode.WALKING)

        await asyncio.to_thread(provider.emit, sample_at(4))
        await asyncio.to_thread(provider.emit, sample_at(10.95))
        await asyncio.sleep(0)
        await task.join()

        task.close()
        await runner

    asyncio.run(scenario())
    assert [e.event for e in events] == ["step_changed", "progress", "arrived"]
    assert task.machine.state is NavState.ARRIVED


def test_thread_delivery_before_consumer_starts(provider, route, events):
    task = _task(provider, events)

    async def scenario():
        task.start(route, TransportMode.WALKING)
        # run() is not awaited yet; the delivery still lands on the loop
        await asyncio.to_thread(provider.emit, sample_at(4))
        await asyncio.sleep(0)
        assert task.pending == 1

        runner = asyncio.create_task(task.run())
        await task.join()
        task.close()
        await runner

    asyncio.run(scenario())
    assert [e.event for e in events] == ["step_changed", "progress"]
