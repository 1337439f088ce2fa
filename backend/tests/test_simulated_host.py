"""Tests for the simulated host and end-to-end runs of the bundled payload."""

import pytest

from tick_loader.host.simulated import HostAbort, SimulatedHost
from tick_loader.main import build_process
from tick_loader.runtime.context import BootstrapState
from tick_loader.runtime.loop import InvocationLoop

from tests.fakes import FakeInstance, FakeSource


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _spending(clock, ms):
    def process(host):
        clock.now += ms / 1000.0
    return process


class TestSimulatedHostBudget:

    def test_bucket_refills_by_unused_limit(self):
        clock = FakeClock()
        host = SimulatedHost(lambda: _spending(clock, 5), limit=20, bucket=100, bucket_cap=1000, clock=clock)
        host.tick()
        assert host.last_used == pytest.approx(5)
        assert host.bucket == pytest.approx(115)

    def test_bucket_is_capped(self):
        clock = FakeClock()
        host = SimulatedHost(lambda: _spending(clock, 0), limit=20, bucket=995, bucket_cap=1000, clock=clock)
        host.run(3)
        assert host.bucket == 1000

    def test_remaining_reflects_spend_within_invocation(self):
        clock = FakeClock()
        seen = []

        def process(host):
            seen.append(host.budget_remaining())
            clock.now += 0.25
            seen.append(host.budget_remaining())
            seen.append(host.budget_used())

        host = SimulatedHost(lambda: process, bucket=1000, clock=clock)
        host.tick()
        assert seen == [pytest.approx(1000), pytest.approx(750), pytest.approx(250)]
        assert host.budget_used() == 0.0

    def test_schedule_overrides_bucket(self):
        seen = []
        host = SimulatedHost(
            lambda: (lambda h: seen.append(h.budget_remaining())),
            bucket=50,
            schedule={2: 4000},
            clock=lambda: 0.0,
        )
        host.run(2)
        assert seen == [50, 4000]


class TestSimulatedHostProcesses:

    def test_halt_recycles_process_before_next_invocation(self):
        processes = []

        def factory():
            def process(host):
                if len(processes) == 1 and host.invocation == 2:
                    host.halt()
            processes.append(process)
            return process

        host = SimulatedHost(factory, clock=lambda: 0.0)
        host.run(3)
        assert host.halts == [2]
        assert host.processes_started == 2

    def test_explicit_recycle(self):
        host = SimulatedHost(lambda: (lambda h: None), clock=lambda: 0.0)
        host.tick()
        host.recycle()
        host.tick()
        assert host.processes_started == 2

    def test_abort_is_recorded_and_does_not_escape(self):
        def process(host):
            raise HostAbort()

        host = SimulatedHost(lambda: process, clock=lambda: 0.0)
        host.tick()
        assert host.aborts == [1]

    def test_imports_expose_host_and_extras(self):
        host = SimulatedHost(lambda: (lambda h: None), imports={'rng': 4})
        assert host.imports() == {'game': host, 'rng': 4}


class TestEndToEnd:

    def test_fault_then_fresh_process(self):
        events = []
        instances = []

        def factory():
            instance = FakeInstance(events, fail_run=not instances)
            instances.append(instance)
            return InvocationLoop(FakeSource(events, instance=instance), fetch_threshold=0, admission_threshold=0)

        host = SimulatedHost(factory, clock=lambda: 0.0)
        host.run(4)
        # 1: load + faulting run, 2: halt, 3: fresh load + run, 4: run
        assert host.halts == [2]
        assert host.processes_started == 2
        assert instances[0].runs == 1
        assert instances[1].runs == 2
        assert host.process.state is BootstrapState.LOGGING_READY
        assert any('run_step fault' in n for n in host.notifications)

    def test_aborted_invocation_leads_to_halt(self):
        class Aborting(FakeInstance):
            def run_step(self):
                super().run_step()
                raise HostAbort()

        events = []
        host = SimulatedHost(
            lambda: InvocationLoop(FakeSource(events, instance=Aborting(events)), fetch_threshold=0, admission_threshold=0),
            clock=lambda: 0.0,
        )
        host.run(3)
        # 1: aborted mid-run, 2: halt, 3: fresh process aborted again
        assert host.aborts == [1, 3]
        assert host.halts == [2]
        assert host.processes_started == 2

    def test_counter_payload_runs(self, counter_manifest):
        host = SimulatedHost(lambda: build_process(counter_manifest), clock=lambda: 0.0)
        host.run(5)
        module = host.process.context.instance.module
        assert module.ticks_seen == 5
        assert host.store == {'last_tick': 5}
        assert host.halts == []

    def test_counter_payload_waits_for_bucket(self, counter_manifest):
        host = SimulatedHost(
            lambda: build_process(counter_manifest),
            bucket=0,
            limit=400,
            clock=lambda: 0.0,
        )
        host.run(2)
        assert host.process.state is BootstrapState.UNLOADED
        host.run(2)
        # bucket reached 800 at invocation 3 and 1200 at invocation 4
        assert host.process.state is BootstrapState.BYTES_FETCHED
        host.run(1)
        assert host.process.state is BootstrapState.LOGGING_READY
        assert host.process.context.instance.module.ticks_seen == 1
