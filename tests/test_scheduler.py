from datetime import timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from watchdog.events import FileModifiedEvent

from change_watcher.scheduler import DEFAULT_POLL_INTERVAL, PollScheduler
from change_watcher.watcher import ChangeWatcher
from tests.utils.observer import emit


def test_start_registers_interval_job(service, tmp_path, reloads):
    watcher = ChangeWatcher(tmp_path, reloads, service=service)
    poller = PollScheduler(watcher)

    poller.start()
    try:
        job = poller.scheduler.get_job(PollScheduler.job_id)
        assert job is not None
        assert job.trigger.interval == timedelta(seconds=DEFAULT_POLL_INTERVAL)
        assert job.max_instances == 1
        assert poller.running
    finally:
        poller.stop()

    assert not poller.scheduler.running


def test_tick_polls_watcher(service, observer, tmp_path, reloads):
    watcher = ChangeWatcher(tmp_path, reloads, reload_threshold=0, service=service)
    poller = PollScheduler(watcher)

    emit(observer, tmp_path, FileModifiedEvent(str(tmp_path / "a.jar")))
    poller.tick()

    assert reloads.calls == [1]
    assert watcher.state.ticks_since_last_reload == 0


def test_stop_leaves_shared_scheduler_running(service, tmp_path, reloads):
    shared = BackgroundScheduler()
    shared.start()
    watcher = ChangeWatcher(tmp_path, reloads, service=service)
    poller = PollScheduler(watcher, interval=0.5, scheduler=shared)

    try:
        poller.start()
        poller.stop()

        assert shared.running
        assert shared.get_job(PollScheduler.job_id) is None
        assert not poller.running
    finally:
        shared.shutdown(wait=False)
