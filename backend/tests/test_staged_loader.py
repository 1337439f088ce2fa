"""Tests for the budget-gated staged loader."""

import logging

import pytest
from hypothesis import given, settings as hyp_settings, strategies as st

from tick_loader.core.errors import CompileFault, FetchFault, InstantiationFault, LoggingSetupFault
from tick_loader.runtime.budget import BudgetOracle
from tick_loader.runtime.context import BootstrapState, ExecutionContext
from tick_loader.runtime.loader import StagedLoader

from tests.fakes import BareInstance, FakeInstance, FakeSource, ScriptedHost

FETCH = 500
ADMIT = 1250


def _loader(source, ctx=None):
    return StagedLoader(source, ctx or ExecutionContext(), fetch_threshold=FETCH, admission_threshold=ADMIT)


class TestStagedLoader:

    def test_insufficient_budget_makes_no_progress(self, source, caplog):
        caplog.set_level(logging.WARNING)
        loader = _loader(source)
        state = loader.step(BudgetOracle(ScriptedHost(remaining=100)))
        assert state is BootstrapState.UNLOADED
        assert source.events == []
        assert "fetch deferred; 100 / 500 required budget" in caplog.text

    def test_budget_for_fetch_only(self, source, caplog):
        caplog.set_level(logging.WARNING)
        loader = _loader(source)
        state = loader.step(BudgetOracle(ScriptedHost(remaining=800)))
        assert state is BootstrapState.BYTES_FETCHED
        assert source.events == ['fetch']
        assert loader.context.blob == b'payload'
        assert "compile deferred; 800 / 1250 required budget" in caplog.text

    def test_generous_budget_loads_everything_in_one_step(self, source, caplog):
        caplog.set_level(logging.INFO)
        loader = _loader(source)
        host = ScriptedHost(remaining=5000)
        host.used = 42
        state = loader.step(BudgetOracle(host), {'game': object()})
        assert state is BootstrapState.LOGGING_READY
        assert source.events == ['fetch', 'compile', 'instantiate', 'logging_setup']
        assert loader.context.blob is None
        assert loader.context.compiled is None
        assert loader.context.instance is source.instance
        assert 'game' in source.imports
        assert "loading complete, budget used: 42" in caplog.text

    def test_resumes_from_last_completed_stage(self, source):
        loader = _loader(source)
        loader.step(BudgetOracle(ScriptedHost(remaining=800)))
        assert loader.context.state is BootstrapState.BYTES_FETCHED
        loader.step(BudgetOracle(ScriptedHost(remaining=2000)))
        assert loader.context.state is BootstrapState.LOGGING_READY
        # fetch ran once; nothing was retried from scratch
        assert source.events == ['fetch', 'compile', 'instantiate', 'logging_setup']

    def test_step_when_ready_is_noop(self, source, caplog):
        loader = _loader(source)
        loader.step(BudgetOracle(ScriptedHost(remaining=5000)))
        before = list(source.events)
        caplog.clear()
        caplog.set_level(logging.INFO)
        assert loader.step(BudgetOracle(ScriptedHost(remaining=0))) is BootstrapState.LOGGING_READY
        assert source.events == before
        assert caplog.text == ''

    def test_module_without_logging_setup(self, events):
        source = FakeSource(events, instance=BareInstance(events))
        loader = _loader(source)
        assert loader.step(BudgetOracle(ScriptedHost(remaining=5000))) is BootstrapState.LOGGING_READY
        assert events == ['fetch', 'compile', 'instantiate']

    @pytest.mark.parametrize(
        'fail_at, exc_type, stuck_at',
        [
            ('fetch', FetchFault, BootstrapState.UNLOADED),
            ('compile', CompileFault, BootstrapState.BYTES_FETCHED),
            ('instantiate', InstantiationFault, BootstrapState.COMPILED),
        ],
    )
    def test_stage_faults_propagate(self, events, fail_at, exc_type, stuck_at):
        loader = _loader(FakeSource(events, fail_at=fail_at))
        with pytest.raises(exc_type):
            loader.step(BudgetOracle(ScriptedHost(remaining=5000)))
        assert loader.context.state is stuck_at

    def test_logging_setup_fault_propagates(self, events):
        source = FakeSource(events, instance=FakeInstance(events, fail_setup=True))
        loader = _loader(source)
        with pytest.raises(LoggingSetupFault):
            loader.step(BudgetOracle(ScriptedHost(remaining=5000)))
        assert loader.context.state is BootstrapState.INSTANTIATED

    @hyp_settings(max_examples=50, deadline=None)
    @given(budgets=st.lists(st.integers(min_value=0, max_value=3000), min_size=1, max_size=12))
    def test_progress_is_monotonic_and_budget_gated(self, budgets):
        loader = _loader(FakeSource([]))
        previous = loader.context.state
        for remaining in budgets:
            state = loader.step(BudgetOracle(ScriptedHost(remaining=remaining)))
            assert state >= previous
            if state != previous:
                assert remaining >= loader.threshold_for(previous)
            elif not loader.context.ready:
                assert remaining < loader.threshold_for(previous)
            previous = state
